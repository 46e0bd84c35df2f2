"""In-memory document store.

A reference IDocumentStore implementation holding root documents per type,
each with embeds-one and embeds-many children. Types are described by the
TypeRegistry; default scopes declared there are honoured unless a lookup
asks to ignore them.

Production integrations wrap their own ODM behind the same interface; this
implementation keeps tests hermetic and documents the expected semantics.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from history_engine.adapters.type_registry import TypeRegistry
from history_engine.errors import MutationFailureError

# Returns an error message for invalid attributes, None when they are valid.
Validator = Callable[[dict[str, Any]], str | None]


@dataclass(eq=False)
class Document:
    """A live document: attributes plus embedded children.

    Attributes:
        type_name: Registered type of the document.
        attributes: Field values, including ``_id``.
        embedded: Relation name -> Document (embeds-one) or list of
            Documents (embeds-many).
        parent: The embedding document, None for roots.
        relation: Relation name under ``parent``, None for roots.
        persisted: True once saved and until destroyed.
    """

    type_name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    embedded: dict[str, Any] = field(default_factory=dict)
    parent: Document | None = field(default=None, repr=False)
    relation: str | None = None
    persisted: bool = False

    @property
    def id(self) -> Any:
        return self.attributes.get("_id")

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def embedded_one(self, name: str) -> Document | None:
        return self.embedded.get(name)

    def embedded_many(self, name: str) -> list[Document]:
        return self.embedded.setdefault(name, [])

    def to_dict(self) -> dict[str, Any]:
        """Attributes with embedded children rendered as nested dicts."""
        result = dict(self.attributes)
        for name, value in self.embedded.items():
            if isinstance(value, list):
                result[name] = [child.to_dict() for child in value]
            elif value is not None:
                result[name] = value.to_dict()
        return result


class InMemoryDocumentStore:
    """IDocumentStore backed by plain dicts.

    Args:
        registry: Type metadata used to type embedded children and to apply
            default scopes.
    """

    def __init__(self, registry: TypeRegistry) -> None:
        self._registry = registry
        # { type_name: { doc_id: Document } }
        self._roots: dict[str, dict[Any, Document]] = {}
        self._validators: dict[str, list[Validator]] = {}

    def add_validator(self, type_name: str, validator: Validator) -> None:
        """Reject writes to ``type_name`` documents the validator flags."""
        self._validators.setdefault(type_name, []).append(validator)

    def insert(self, type_name: str, attrs: dict[str, Any]) -> Document:
        """Create and save a root document in one call."""
        doc = self.new_root(type_name, attrs)
        self.save(doc)
        return doc

    def count(self, type_name: str) -> int:
        return len(self._roots.get(type_name, {}))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find_root(self, type_name: str, doc_id: Any, ignore_default_filters: bool = True) -> Document | None:
        doc = self._roots.get(type_name, {}).get(doc_id)
        if doc is None or not self._visible(doc, ignore_default_filters):
            return None
        return doc

    def get_embedded_one(self, doc: Document, name: str) -> Document | None:
        return doc.embedded_one(name)

    def get_embedded_many(
        self,
        doc: Document,
        name: str,
        doc_id: Any,
        ignore_default_filters: bool = True,
    ) -> Document | None:
        for child in doc.embedded_many(name):
            if child.id == doc_id and self._visible(child, ignore_default_filters):
                return child
        return None

    def type_name_of(self, doc: Document) -> str:
        return doc.type_name

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def new_root(self, type_name: str, attrs: dict[str, Any]) -> Document:
        self._registry.get(type_name)
        return Document(type_name=type_name, attributes=dict(attrs))

    def assign_id(self, doc: Document, doc_id: Any) -> None:
        doc.attributes["_id"] = doc_id

    def save(self, doc: Document) -> None:
        self._validate(doc.type_name, doc.attributes)
        if doc.parent is not None:
            doc.persisted = True
            return

        if doc.id is None:
            doc.attributes["_id"] = str(uuid.uuid4())
        collection = self._roots.setdefault(doc.type_name, {})
        existing = collection.get(doc.id)
        if existing is not None and existing is not doc:
            raise MutationFailureError(
                message="Duplicate document id", type_name=doc.type_name, doc_id=doc.id
            )
        collection[doc.id] = doc
        doc.persisted = True

    def create_embedded_one(self, parent: Document, name: str, attrs: dict[str, Any]) -> Document:
        child = self._build_child(parent, name, attrs)
        parent.embedded[name] = child
        return child

    def append_embedded_many(self, parent: Document, name: str, attrs: dict[str, Any]) -> Document:
        child = self._build_child(parent, name, attrs)
        parent.embedded_many(name).append(child)
        return child

    def mutate_attributes(self, doc: Document, attrs: dict[str, Any]) -> None:
        if not doc.persisted:
            raise MutationFailureError(
                message="Cannot update a document that is not persisted",
                type_name=doc.type_name,
                doc_id=doc.id,
            )
        merged = {**doc.attributes, **attrs}
        self._validate(doc.type_name, merged)
        doc.attributes = merged

    def destroy(self, doc: Document) -> None:
        if not doc.persisted:
            raise MutationFailureError(
                message="Cannot destroy a document that is not persisted",
                type_name=doc.type_name,
                doc_id=doc.id,
            )
        if doc.parent is None:
            self._roots.get(doc.type_name, {}).pop(doc.id, None)
        else:
            siblings = doc.parent.embedded.get(doc.relation)
            if isinstance(siblings, list):
                siblings.remove(doc)
            else:
                doc.parent.embedded.pop(doc.relation, None)
        doc.persisted = False

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _build_child(self, parent: Document, name: str, attrs: dict[str, Any]) -> Document:
        if not parent.persisted:
            raise MutationFailureError(
                message="Cannot embed into a document that is not persisted",
                type_name=parent.type_name,
                relation=name,
            )
        type_name = self._registry.embedded_type(parent.type_name, name)
        attributes = dict(attrs)
        attributes.setdefault("_id", str(uuid.uuid4()))
        self._validate(type_name, attributes)
        return Document(
            type_name=type_name,
            attributes=attributes,
            parent=parent,
            relation=name,
            persisted=True,
        )

    def _visible(self, doc: Document, ignore_default_filters: bool) -> bool:
        if ignore_default_filters:
            return True
        scope = self._registry.get(doc.type_name).default_scope
        return scope is None or scope(doc.attributes)

    def _validate(self, type_name: str, attrs: dict[str, Any]) -> None:
        for validator in self._validators.get(type_name, []):
            error = validator(attrs)
            if error is not None:
                raise MutationFailureError(message=error, type_name=type_name, doc_id=attrs.get("_id"))
