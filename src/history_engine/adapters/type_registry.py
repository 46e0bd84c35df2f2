"""In-memory type metadata registry.

Holds the tracking options and embedded relations of every document type
the engine works with and answers the ITypeMetadata questions from them.
A document model integration registers one TypeSpec per type at startup.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from history_engine.errors import ModelingContractViolation
from history_engine.settings import Settings


@dataclass
class TypeSpec:
    """Tracking options and relations of one document type.

    Attributes:
        name: The type name used in association chains.
        fields: Tracked fields, or None to track every field not excluded.
        exclude: Fields never tracked. Defaults to Settings.untracked_fields
            when left as None.
        embeds_one: Relation name -> embedded type name.
        embeds_many: Relation name -> embedded type name.
        tracked_relations: Relations whose changes are tracked on this type,
            or None to track all of them.
        localized_fields: Fields stored per locale.
        modifier_field: Field receiving the modifier identity. Defaults to
            Settings.modifier_field.
        version_field: Version counter field. Defaults to Settings.version_field.
        default_scope: Predicate a document must satisfy to be visible when
            default filters apply, e.g. ``lambda doc: not doc.get("deleted_at")``.
    """

    name: str
    fields: set[str] | None = None
    exclude: set[str] | None = None
    embeds_one: dict[str, str] = field(default_factory=dict)
    embeds_many: dict[str, str] = field(default_factory=dict)
    tracked_relations: set[str] | None = None
    localized_fields: set[str] = field(default_factory=set)
    modifier_field: str | None = None
    version_field: str | None = None
    default_scope: Callable[[dict[str, Any]], bool] | None = None


class TypeRegistry:
    """ITypeMetadata implementation backed by registered TypeSpecs.

    Args:
        settings: Supplies defaults for options a TypeSpec leaves unset.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._specs: dict[str, TypeSpec] = {}

    def register(self, spec: TypeSpec) -> TypeSpec:
        """Register (or replace) the spec for ``spec.name``.

        Defaults are filled on a copy; the caller's TypeSpec is left as is so
        it can be registered with registries built from other settings.
        """
        spec = replace(
            spec,
            exclude=set(self._settings.untracked_fields) if spec.exclude is None else set(spec.exclude),
            modifier_field=spec.modifier_field or self._settings.modifier_field,
            version_field=spec.version_field or self._settings.version_field,
        )
        self._specs[spec.name] = spec
        return spec

    def get(self, type_name: str) -> TypeSpec:
        spec = self._specs.get(type_name)
        if spec is None:
            raise ModelingContractViolation(message="Unknown document type", type_name=type_name)
        return spec

    def embedded_type(self, type_name: str, relation: str) -> str:
        """Return the type embedded under ``relation`` of ``type_name``."""
        spec = self.get(type_name)
        embedded = spec.embeds_one.get(relation) or spec.embeds_many.get(relation)
        if embedded is None:
            raise ModelingContractViolation(
                message="Association is neither embeds-one nor embeds-many",
                type_name=type_name,
                relation=relation,
            )
        return embedded

    def is_tracked(self, type_name: str, field_name: str) -> bool:
        spec = self.get(type_name)
        if field_name in ("_id", "_type", spec.modifier_field, spec.version_field):
            return False
        if field_name in spec.embeds_one or field_name in spec.embeds_many:
            return spec.tracked_relations is None or field_name in spec.tracked_relations
        if spec.fields is not None:
            return field_name in spec.fields
        return field_name not in (spec.exclude or set())

    def is_embeds_many(self, type_name: str, field_name: str) -> bool:
        return field_name in self.get(type_name).embeds_many

    def is_embeds_one(self, type_name: str, field_name: str) -> bool:
        return field_name in self.get(type_name).embeds_one

    def localized_field_names(self, type_name: str) -> set[str]:
        return set(self.get(type_name).localized_fields)

    def modifier_field_name(self, type_name: str) -> str:
        return self.get(type_name).modifier_field or self._settings.modifier_field
