"""Tests for undo/redo reconstruction.

Covers: HistoryTracker accessors and caching, undo/redo attribute
computation, re-create of root and embedded documents, re-destroy,
localized write-back, and error propagation.

Run with: pytest tests/test_reconstructor.py -v
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from history_engine.core.models import Action, ChangeRecord
from history_engine.errors import (
    MalformedRecordError,
    ModelingContractViolation,
    MutationFailureError,
    NotFoundError,
)
from history_engine.tracker.classifier import FieldChange
from history_engine.tracker.reconstructor import HistoryTracker

from .conftest import make_record


@pytest.fixture()
def tracker_for(store, registry, settings):
    """Build HistoryTrackers bound to the test store and registry."""

    def _build(record: ChangeRecord) -> HistoryTracker:
        return HistoryTracker(record, store, registry, settings)

    return _build


# ---------------------------------------------------------------------------
# Test 1: undo of a root destroy re-creates the document with its id
# ---------------------------------------------------------------------------

def test_undo_destroy_recreates_standalone_root(store, tracker_for):
    record = make_record(Action.DESTROY, [("Person", 7)], original={"_id": 7, "name": "Bob"})

    restored = tracker_for(record).undo()

    assert restored.id == 7
    assert store.find_root("Person", 7) is restored
    assert restored.get("name") == "Bob"


# ---------------------------------------------------------------------------
# Test 2: re-created root gets localized keys
# ---------------------------------------------------------------------------

def test_undo_destroy_localizes_keys(store, tracker_for):
    record = make_record(
        Action.DESTROY,
        [("Person", "p8")],
        original={"_id": "p8", "name": "Eve", "title": {"en": "Dr"}},
    )

    restored = tracker_for(record).undo()

    assert restored.get("title_translations") == {"en": "Dr"}
    assert "title" not in restored.attributes


# ---------------------------------------------------------------------------
# Test 3: undo of a destroy without a stored id is malformed
# ---------------------------------------------------------------------------

def test_undo_destroy_without_id_is_malformed(store, tracker_for):
    record = make_record(Action.DESTROY, [("Person", 7)], original={"name": "Bob"})

    with pytest.raises(MalformedRecordError):
        tracker_for(record).undo()
    assert store.count("Person") == 0


# ---------------------------------------------------------------------------
# Test 4: undo of an embeds-many destroy appends to the parent
# ---------------------------------------------------------------------------

def test_undo_destroy_recreates_embeds_many(store, person, tracker_for):
    address = store.get_embedded_many(person, "addresses", "a1")
    store.destroy(address)
    record = make_record(
        Action.DESTROY,
        [("Person", "p1"), ("addresses", "a1")],
        original={"_id": "a1", "street": "Main St", "city": "Oslo"},
    )

    restored = tracker_for(record).undo()

    assert restored.parent is person
    assert [child.id for child in person.embedded_many("addresses")] == ["a2", "a1"]
    assert restored.get("street") == "Main St"


# ---------------------------------------------------------------------------
# Test 5: undo of an embeds-one destroy re-creates it on the parent
# ---------------------------------------------------------------------------

def test_undo_destroy_recreates_embeds_one(store, person, tracker_for):
    store.destroy(person.embedded_one("profile"))
    record = make_record(
        Action.DESTROY,
        [("Person", "p1"), ("profile", None)],
        original={"_id": "pr1", "bio": "Engineer"},
    )

    tracker_for(record).undo()

    assert person.embedded_one("profile").get("bio") == "Engineer"


# ---------------------------------------------------------------------------
# Test 6: re-create under a relation that is not embedded
# ---------------------------------------------------------------------------

def test_undo_destroy_on_unknown_relation(person, tracker_for):
    record = make_record(
        Action.DESTROY,
        [("Person", "p1"), ("friends", "f1")],
        original={"_id": "f1"},
    )

    with pytest.raises(ModelingContractViolation):
        tracker_for(record).undo()


# ---------------------------------------------------------------------------
# Test 7: undo of a create destroys without any attribute mutation
# ---------------------------------------------------------------------------

def test_undo_create_destroys_target(store, person, tracker_for):
    record = make_record(Action.CREATE, [("Person", "p1")], modified={"_id": "p1", "name": "Alice"})
    store.mutate_attributes = MagicMock(wraps=store.mutate_attributes)

    tracker_for(record).undo()

    assert store.find_root("Person", "p1") is None
    store.mutate_attributes.assert_not_called()


# ---------------------------------------------------------------------------
# Test 8: undo of an embedded create removes it from the parent
# ---------------------------------------------------------------------------

def test_undo_create_destroys_embedded(person, tracker_for):
    record = make_record(
        Action.CREATE,
        [("Person", "p1"), ("addresses", "a2")],
        modified={"_id": "a2", "street": "High St"},
    )

    tracker_for(record).undo()

    assert [child.id for child in person.embedded_many("addresses")] == ["a1"]


# ---------------------------------------------------------------------------
# Test 9: redo of a destroy destroys, redo of a create re-creates
# ---------------------------------------------------------------------------

def test_redo_destroy_and_create(store, person, tracker_for):
    destroy_record = make_record(Action.DESTROY, [("Person", "p1")], original=person.to_dict())
    tracker_for(destroy_record).redo()
    assert store.find_root("Person", "p1") is None

    create_record = make_record(Action.CREATE, [("Person", "p1")], modified={"_id": "p1", "name": "Alice"})
    restored = tracker_for(create_record).redo()
    assert store.find_root("Person", "p1") is restored
    assert restored.get("name") == "Alice"


# ---------------------------------------------------------------------------
# Test 10: undo attrs clear fields the change introduced
# ---------------------------------------------------------------------------

def test_undo_attrs_clear_added_fields(store, tracker_for):
    store.insert("Widget", {"_id": "w1", "a": 1, "b": 2})
    record = make_record(Action.UPDATE, [("Widget", "w1")], original={"a": 1}, modified={"a": 1, "b": 2})

    assert tracker_for(record).undo_attrs("u1") == {"a": 1, "modifier": "u1", "b": None}


# ---------------------------------------------------------------------------
# Test 11: redo attrs re-apply the modified values
# ---------------------------------------------------------------------------

def test_redo_attrs(store, tracker_for):
    store.insert("Widget", {"_id": "w1", "a": 1})
    record = make_record(Action.UPDATE, [("Widget", "w1")], original={"a": 1}, modified={"a": 1, "b": 2})

    assert tracker_for(record).redo_attrs("u1") == {"a": 1, "b": 2, "modifier": "u1"}


# ---------------------------------------------------------------------------
# Test 12: undo of an update restores the store document
# ---------------------------------------------------------------------------

def test_undo_update_restores_values(store, person, tracker_for):
    store.mutate_attributes(person, {"name": "Alicia", "nickname": "Al"})
    record = make_record(
        Action.UPDATE,
        [("Person", "p1")],
        original={"name": "Alice"},
        modified={"name": "Alicia", "nickname": "Al"},
    )

    tracker_for(record).undo("u2")

    assert person.get("name") == "Alice"
    assert person.get("nickname") is None
    assert person.get("modifier") == "u2"


# ---------------------------------------------------------------------------
# Test 13: redo after undo round-trips every field
# ---------------------------------------------------------------------------

def test_undo_redo_round_trip(store, person, tracker_for):
    original = {"name": "Alice", "tags": ["admin"]}
    modified = {"name": "Alicia", "tags": ["admin", "ops"], "email": "alicia@example.com"}
    store.mutate_attributes(person, modified)
    record = make_record(Action.UPDATE, [("Person", "p1")], original=original, modified=modified)

    tracker_for(record).undo()
    assert {key: person.get(key) for key in original} == original

    tracker_for(record).redo()
    assert {key: person.get(key) for key in modified} == modified

    tracker_for(record).undo()
    assert {key: person.get(key) for key in original} == original


# ---------------------------------------------------------------------------
# Test 14: embedded update targets the embedded document
# ---------------------------------------------------------------------------

def test_undo_embedded_update(store, person, tracker_for):
    address = store.get_embedded_many(person, "addresses", "a2")
    store.mutate_attributes(address, {"street": "Low St"})
    record = make_record(
        Action.UPDATE,
        [("Person", "p1"), ("addresses", "a2")],
        original={"street": "High St"},
        modified={"street": "Low St"},
    )

    tracker_for(record).undo("u3")

    assert address.get("street") == "High St"
    assert address.get("modifier") == "u3"
    assert person.get("modifier") is None


# ---------------------------------------------------------------------------
# Test 15: localized fields are written back under their storage key
# ---------------------------------------------------------------------------

def test_undo_attrs_localize_keys(person, tracker_for):
    record = make_record(
        Action.UPDATE,
        [("Person", "p1")],
        original={"title": {"en": "Old"}},
        modified={"title": {"en": "New"}},
    )

    attrs = tracker_for(record).undo_attrs("u1")

    assert attrs == {"title_translations": {"en": "Old"}, "modifier": "u1"}


# ---------------------------------------------------------------------------
# Test 16: store rejections propagate and nothing is written
# ---------------------------------------------------------------------------

def test_mutation_failure_propagates(store, person, tracker_for):
    store.add_validator("Person", lambda attrs: None if attrs.get("name") else "name is required")
    record = make_record(Action.UPDATE, [("Person", "p1")], original={}, modified={"name": "Alice"})

    with pytest.raises(MutationFailureError):
        tracker_for(record).undo("u1")

    assert person.get("name") == "Alice"
    assert person.get("modifier") is None


# ---------------------------------------------------------------------------
# Test 17: missing target propagates NotFoundError
# ---------------------------------------------------------------------------

def test_undo_update_missing_target(tracker_for):
    record = make_record(Action.UPDATE, [("Person", "ghost")], original={"name": "A"}, modified={"name": "B"})

    with pytest.raises(NotFoundError):
        tracker_for(record).undo()


# ---------------------------------------------------------------------------
# Test 18: an empty chain is rejected up front
# ---------------------------------------------------------------------------

def test_empty_chain_is_malformed(store, registry):
    record = ChangeRecord(action=Action.UPDATE, modified={"name": "x"})

    with pytest.raises(MalformedRecordError):
        HistoryTracker(record, store, registry)


# ---------------------------------------------------------------------------
# Test 19: trackable accessors for an embedded document
# ---------------------------------------------------------------------------

def test_trackable_accessors(person, tracker_for):
    tracker = tracker_for(
        make_record(Action.UPDATE, [("Person", "p1"), ("addresses", "a1")], modified={"city": "Oslo"})
    )

    assert tracker.root_type_name == "Person"
    assert tracker.trackable_root is person
    assert tracker.trackable_parent is person
    assert tracker.trackable_parents == [person]
    assert tracker.trackable.id == "a1"


# ---------------------------------------------------------------------------
# Test 20: tracked changes and edits use the root type and are cached
# ---------------------------------------------------------------------------

def test_tracked_edits_cached_and_filtered(person, tracker_for):
    tracker = tracker_for(
        make_record(
            Action.UPDATE,
            [("Person", "p1")],
            original={"name": "Alice", "tags": ["admin"], "updated_at": "t1"},
            modified={"name": "Alicia", "tags": ["ops"], "updated_at": "t2", "_id": "p1"},
        )
    )

    assert set(tracker.tracked_changes) == {"name", "tags"}
    assert tracker.tracked_edits is tracker.tracked_edits
    assert tracker.tracked_edits.modify == {"name": FieldChange("Alice", "Alicia")}
    assert tracker.tracked_edits.array == {"tags": {"add": ["ops"], "remove": ["admin"]}}
    assert tracker.affected == {"name": "Alicia", "tags": ["ops"]}


# ---------------------------------------------------------------------------
# Test 21: embeds-many edits on the root record
# ---------------------------------------------------------------------------

def test_tracked_edits_embeds_many(person, tracker_for):
    tracker = tracker_for(
        make_record(
            Action.UPDATE,
            [("Person", "p1")],
            original={"addresses": [{"_id": "a1", "city": "Oslo"}]},
            modified={"addresses": [{"_id": "a1", "city": "Bergen"}]},
        )
    )

    assert tracker.tracked_edits.to_dict() == {
        "embeds_many": {
            "addresses": {
                "modify": [{"from": {"_id": "a1", "city": "Oslo"}, "to": {"_id": "a1", "city": "Bergen"}}]
            }
        }
    }


# ---------------------------------------------------------------------------
# Test 22: undoing an added localized field keeps stored translations
# ---------------------------------------------------------------------------

def test_undo_added_localized_field_keeps_translations(store, person, tracker_for):
    store.mutate_attributes(person, {"title_translations": {"en": "Dr", "fr": "Dr"}})
    record = make_record(Action.UPDATE, [("Person", "p1")], original={}, modified={"title": {"en": "Dr"}})

    assert tracker_for(record).undo_attrs("u1") == {"modifier": "u1", "title": None}

    tracker_for(record).undo("u1")

    assert person.get("title_translations") == {"en": "Dr", "fr": "Dr"}
    assert person.get("title") is None


# ---------------------------------------------------------------------------
# Test 23: replayed values are copies of the record's values
# ---------------------------------------------------------------------------

def test_replay_does_not_share_record_values(store, person, tracker_for):
    record = make_record(
        Action.UPDATE,
        [("Person", "p1")],
        original={"tags": ["admin"]},
        modified={"tags": ["admin", "ops"]},
    )

    tracker_for(record).redo("u1")
    person.get("tags").append("audit")
    tracker_for(record).undo("u1")
    person.get("tags").append("audit")

    assert record.modified == {"tags": ["admin", "ops"]}
    assert record.original == {"tags": ["admin"]}
