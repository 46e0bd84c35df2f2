"""Change classification for tracked documents.

Turns a pair of before/after field snapshots into:

- a change set: ``{field: FieldChange(from, to)}`` restricted to tracked
  fields, with sides that were absent or None dropped;
- an edit summary: each changed field sorted into exactly one of the
  ``add``, ``remove``, ``modify``, ``array`` or ``embeds_many`` buckets;
- affected values: a single value per field, kept for older consumers.

Everything here is a pure function of its inputs. Caching lives with the
caller (see HistoryTracker).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from history_engine.core.models import Action

FieldPredicate = Callable[[str], bool]


class _Absent:
    """Marker for a snapshot side that carried no value."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()


def is_blank(value: Any) -> bool:
    """Return True for values that count as "no value".

    Absent, None, empty or whitespace-only strings, and empty sequences or
    mappings are blank. False and 0 are values.
    """
    if value is ABSENT or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Sequence, Mapping, set, frozenset)):
        return len(value) == 0
    return False


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _subtract(items: Iterable[Any], removed: Sequence[Any]) -> list[Any]:
    # Element equality rather than hashing: records are dicts.
    return [item for item in items if item not in removed]


@dataclass(frozen=True)
class FieldChange:
    """The before and after value of one field. Missing sides are ABSENT."""

    from_value: Any = ABSENT
    to_value: Any = ABSENT

    @property
    def has_from(self) -> bool:
        return self.from_value is not ABSENT

    @property
    def has_to(self) -> bool:
        return self.to_value is not ABSENT

    def is_empty(self) -> bool:
        return not self.has_from and not self.has_to

    def to_dict(self) -> dict[str, Any]:
        """Return ``{"from": ..., "to": ...}`` without the absent sides."""
        result: dict[str, Any] = {}
        if self.has_from:
            result["from"] = self.from_value
        if self.has_to:
            result["to"] = self.to_value
        return result


@dataclass
class EditSummary:
    """Human-readable classification of a change set.

    Attributes:
        add: field -> new value, for fields that had no value before.
        remove: field -> old value, for fields that have no value after.
        modify: field -> FieldChange, for scalar changes.
        array: field -> ``{"add": [...], "remove": [...]}`` for list fields.
        embeds_many: field -> ``{"add": [...], "remove": [...],
            "modify": [FieldChange, ...]}`` for nested record collections.
    """

    add: dict[str, Any] = field(default_factory=dict)
    remove: dict[str, Any] = field(default_factory=dict)
    modify: dict[str, FieldChange] = field(default_factory=dict)
    array: dict[str, dict[str, list[Any]]] = field(default_factory=dict)
    embeds_many: dict[str, dict[str, list[Any]]] = field(default_factory=dict)

    def buckets(self) -> dict[str, dict[str, Any]]:
        return {
            "add": self.add,
            "remove": self.remove,
            "modify": self.modify,
            "array": self.array,
            "embeds_many": self.embeds_many,
        }

    def fields(self) -> list[str]:
        """Return every classified field name, bucket by bucket."""
        return [name for bucket in self.buckets().values() for name in bucket]

    def is_empty(self) -> bool:
        return not self.fields()

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Plain-dict rendering with empty buckets omitted."""
        result: dict[str, dict[str, Any]] = {}
        for bucket_name, bucket in self.buckets().items():
            if not bucket:
                continue
            if bucket_name == "modify":
                result[bucket_name] = {key: change.to_dict() for key, change in bucket.items()}
            elif bucket_name == "embeds_many":
                result[bucket_name] = {
                    key: {
                        part: [pair.to_dict() for pair in values] if part == "modify" else list(values)
                        for part, values in delta.items()
                    }
                    for key, delta in bucket.items()
                }
            else:
                result[bucket_name] = dict(bucket)
        return result


def compute_tracked_changes(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    is_tracked: FieldPredicate,
) -> dict[str, FieldChange]:
    """Build the change set for two snapshots.

    Keys are taken from the union of both snapshots, ``after`` order first.
    A side whose value is missing or None is dropped; a key whose both sides
    were dropped, or which is not tracked, is left out entirely.

    Args:
        before: Field values before the change (the record's ``original``).
        after: Field values after the change (the record's ``modified``).
        is_tracked: Predicate telling whether the target type tracks a field.

    Returns:
        Mapping of field name to FieldChange.
    """
    changes: dict[str, FieldChange] = {}
    keys = list(after.keys()) + [key for key in before.keys() if key not in after]
    for key in keys:
        from_value = before.get(key)
        to_value = after.get(key)
        change = FieldChange(
            from_value=ABSENT if from_value is None else from_value,
            to_value=ABSENT if to_value is None else to_value,
        )
        if change.is_empty() or not is_tracked(key):
            continue
        changes[key] = change
    return changes


def embeds_many_delta(from_records: Any, to_records: Any) -> dict[str, list[Any]]:
    """Diff two collections of embedded records identified by ``_id``.

    A record whose id survives on both sides but whose content changed is
    reported once under ``modify`` as a FieldChange pair, never as a remove
    plus an add. Only records with new or vanished ids land in ``add`` or
    ``remove``.

    Args:
        from_records: Records before the change. Blank means empty.
        to_records: Records after the change. Blank means empty.

    Returns:
        ``{"add": [...], "remove": [...], "modify": [FieldChange, ...]}``
        with empty buckets omitted.
    """
    before = list(from_records) if not is_blank(from_records) else []
    after = list(to_records) if not is_blank(to_records) else []

    after_ids = [_record_id(record) for record in after]
    matched_ids: list[Any] = []
    for record in before:
        record_id = _record_id(record)
        if record_id is None or record_id not in after_ids or record_id in matched_ids:
            continue
        matched_ids.append(record_id)

    modify = []
    for record_id in matched_ids:
        pair = FieldChange(
            from_value=_first_with_id(before, record_id),
            to_value=_first_with_id(after, record_id),
        )
        if pair.from_value != pair.to_value:
            modify.append(pair)

    ignored = [record for pair in modify for record in (pair.from_value, pair.to_value)]
    removed = _subtract(_subtract(before, after), ignored)
    added = _subtract(_subtract(after, before), ignored)

    delta: dict[str, list[Any]] = {"add": added, "remove": removed, "modify": modify}
    return {bucket: values for bucket, values in delta.items() if values}


def _record_id(record: Any) -> Any:
    if isinstance(record, Mapping):
        return record.get("_id")
    return None


def _first_with_id(records: Sequence[Any], record_id: Any) -> Any:
    return next(record for record in records if _record_id(record) == record_id)


def classify_changes(
    changes: Mapping[str, FieldChange],
    is_embeds_many: FieldPredicate,
) -> EditSummary:
    """Sort an already computed change set into edit buckets."""
    summary = EditSummary()
    for key, change in changes.items():
        from_value = change.from_value
        to_value = change.to_value
        if is_blank(from_value) and is_blank(to_value):
            continue

        if is_embeds_many(key):
            summary.embeds_many[key] = embeds_many_delta(from_value, to_value)
        elif is_blank(from_value):
            summary.add[key] = to_value
        elif is_blank(to_value):
            summary.remove[key] = from_value
        elif _is_sequence(from_value) and _is_sequence(to_value):
            delta = {
                "add": _subtract(to_value, from_value),
                "remove": _subtract(from_value, to_value),
            }
            summary.array[key] = {part: values for part, values in delta.items() if values}
        else:
            summary.modify[key] = change
    return summary


def classify(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    is_tracked: FieldPredicate,
    is_embeds_many: FieldPredicate,
) -> EditSummary:
    """Classify the edits between two snapshots.

    Args:
        before: Field values before the change.
        after: Field values after the change.
        is_tracked: Predicate telling whether a field is tracked.
        is_embeds_many: Predicate telling whether a field is an embeds-many
            relation whose values are lists of ``_id``-keyed records.

    Returns:
        The EditSummary. Calling twice with the same inputs yields equal
        summaries.
    """
    return classify_changes(compute_tracked_changes(before, after, is_tracked), is_embeds_many)


def affected_values(changes: Mapping[str, FieldChange], action: Action) -> dict[str, Any]:
    """Collapse a change set to one value per field.

    Destroys report the value before the change; creates and updates report
    the value after it. A missing side becomes None.
    """
    use_from = action is Action.DESTROY
    result: dict[str, Any] = {}
    for key, change in changes.items():
        value = change.from_value if use_from else change.to_value
        result[key] = None if value is ABSENT else value
    return result
