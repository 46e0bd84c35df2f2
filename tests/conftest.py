"""Test fixtures for history-engine.

Provides:
- settings: Default engine Settings
- registry: A TypeRegistry with Person (root), Address (embeds-many),
  Profile (embeds-one) and Widget (root tracking every field)
- store: An empty InMemoryDocumentStore over the registry
- person: A saved Person "p1" with two addresses and a profile
- make_record: Factory for ChangeRecords
"""

from typing import Any

import pytest

from history_engine.adapters.document_store import Document, InMemoryDocumentStore
from history_engine.adapters.type_registry import TypeRegistry, TypeSpec
from history_engine.core.models import Action, AssociationStep, ChangeRecord
from history_engine.settings import Settings


@pytest.fixture()
def settings() -> Settings:
    """Return default engine settings.

    Returns:
        Settings with the stock modifier field and localized suffix.
    """
    return Settings()


@pytest.fixture()
def registry(settings: Settings) -> TypeRegistry:
    """Build a registry describing the test document model.

    Args:
        settings: Injected settings fixture.

    Returns:
        A TypeRegistry with Person, Address, Profile and Widget registered.
    """
    registry = TypeRegistry(settings)
    registry.register(
        TypeSpec(
            name="Person",
            fields={"name", "email", "tags", "title", "nickname"},
            embeds_many={"addresses": "Address"},
            embeds_one={"profile": "Profile"},
            localized_fields={"title"},
            default_scope=lambda attrs: not attrs.get("deleted_at"),
        )
    )
    registry.register(TypeSpec(name="Address", fields={"street", "city"}))
    registry.register(TypeSpec(name="Profile", fields={"bio"}))
    registry.register(TypeSpec(name="Widget"))
    return registry


@pytest.fixture()
def store(registry: TypeRegistry) -> InMemoryDocumentStore:
    """Create an empty in-memory document store.

    Args:
        registry: Injected registry fixture.

    Returns:
        An InMemoryDocumentStore with no documents.
    """
    return InMemoryDocumentStore(registry)


@pytest.fixture()
def person(store: InMemoryDocumentStore) -> Document:
    """Insert Person "p1" with addresses "a1", "a2" and a profile.

    Args:
        store: Injected store fixture.

    Returns:
        The saved root Document.
    """
    doc = store.insert(
        "Person",
        {"_id": "p1", "name": "Alice", "email": "alice@example.com", "tags": ["admin"]},
    )
    store.append_embedded_many(doc, "addresses", {"_id": "a1", "street": "Main St", "city": "Oslo"})
    store.append_embedded_many(doc, "addresses", {"_id": "a2", "street": "High St", "city": "Bergen"})
    store.create_embedded_one(doc, "profile", {"_id": "pr1", "bio": "Engineer"})
    return doc


def make_record(
    action: Action | str,
    chain: list[tuple[str, Any]],
    original: dict[str, Any] | None = None,
    modified: dict[str, Any] | None = None,
    modifier_id: Any = None,
    version: int | None = None,
) -> ChangeRecord:
    """Build a ChangeRecord from compact arguments.

    Args:
        action: Action enum or its string value.
        chain: ``[(name, id), ...]`` association chain steps.
        original: Values before the change.
        modified: Values after the change.
        modifier_id: Actor identity.
        version: Trackable version.

    Returns:
        A ChangeRecord.
    """
    return ChangeRecord(
        association_chain=[AssociationStep(name=name, id=doc_id) for name, doc_id in chain],
        original=original or {},
        modified=modified or {},
        action=Action(action),
        modifier_id=modifier_id,
        version=version,
        scope=chain[0][0] if chain else None,
    )


@pytest.fixture()
def record_factory():
    """Expose make_record to tests as a fixture.

    Returns:
        The make_record function.
    """
    return make_record
