"""Key normalization for locale-qualified fields."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from history_engine.tracker.classifier import is_blank

DEFAULT_SUFFIX = "_translations"


def localize_keys(
    attrs: Mapping[str, Any],
    localized_fields: Iterable[str],
    suffix: str = DEFAULT_SUFFIX,
) -> dict[str, Any]:
    """Rename localized field keys to their translations storage key.

    ``{"title": {...}}`` becomes ``{"title_translations": {...}}`` when
    ``title`` is localized. Blank values keep their plain key so that a
    cleared field never overwrites the stored translations. Other keys pass
    through. Must be the last step before attributes reach the document store.

    Args:
        attrs: Attribute mapping about to be written.
        localized_fields: Field names the root type stores per locale.
        suffix: Storage key suffix for localized fields.

    Returns:
        A new mapping; ``attrs`` is left untouched.
    """
    result = dict(attrs)
    for name in localized_fields:
        if name in result and not is_blank(result[name]):
            result[f"{name}{suffix}"] = result.pop(name)
    return result
