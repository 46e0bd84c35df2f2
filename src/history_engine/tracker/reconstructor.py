"""Undo/redo reconstruction for tracked document changes.

HistoryTracker wraps one ChangeRecord together with the live document store
and replays it in either direction:

| action  | undo        | redo        |
|---------|-------------|-------------|
| create  | re-destroy  | re-create   |
| update  | undo attrs  | redo attrs  |
| destroy | re-create   | re-destroy  |

Attribute replays compute the complete attribute mapping first and hand it
to the store in a single ``mutate_attributes`` call, so a change is either
applied as a whole or the store's error propagates with nothing written.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from functools import cached_property
from typing import Any

from history_engine.core.interfaces import IDocumentStore, ITypeMetadata
from history_engine.core.models import Action, ChangeRecord, Direction
from history_engine.errors import MalformedRecordError, ModelingContractViolation
from history_engine.observability import get_logger
from history_engine.settings import Settings
from history_engine.tracker.classifier import (
    EditSummary,
    FieldChange,
    affected_values,
    classify_changes,
    compute_tracked_changes,
)
from history_engine.tracker.localizer import localize_keys
from history_engine.tracker.resolver import PathResolver

logger = get_logger(__name__)


class HistoryTracker:
    """Classifies and replays a single ChangeRecord.

    Derived values (change set, edit summary, affected values, resolved
    documents) are computed on first access and cached for the lifetime of
    the tracker. Build a new tracker to observe a different store state.

    Args:
        record: The change to classify or replay.
        store: The live document store.
        metadata: Per-type tracking and relation metadata.
        settings: Engine settings. Defaults to Settings() from the environment.

    Raises:
        MalformedRecordError: If the record's association chain is empty.
    """

    def __init__(
        self,
        record: ChangeRecord,
        store: IDocumentStore,
        metadata: ITypeMetadata,
        settings: Settings | None = None,
    ) -> None:
        if not record.association_chain:
            raise MalformedRecordError(message="Association chain is empty", tracker_id=record.id)
        self._record = record
        self._store = store
        self._metadata = metadata
        self._settings = settings or Settings()
        self._resolver = PathResolver(store, metadata)

    @property
    def record(self) -> ChangeRecord:
        return self._record

    @property
    def root_type_name(self) -> str:
        """Type of the root aggregate, available even once the document is gone."""
        return self._record.association_chain[0].name

    # -------------------------------------------------------------------------
    # Resolved documents
    # -------------------------------------------------------------------------

    @cached_property
    def trackable_parents(self) -> list[Any]:
        """Documents above the trackable, root first. Empty for a root trackable."""
        return self._resolver.resolve(self._record.association_chain[:-1]) if self._is_embedded else []

    @cached_property
    def trackable_parent(self) -> Any | None:
        return self.trackable_parents[-1] if self.trackable_parents else None

    @cached_property
    def trackable(self) -> Any:
        return self._resolver.resolve_step(self.trackable_parent, self._record.association_chain[-1])

    @cached_property
    def trackable_root(self) -> Any:
        return self.trackable_parents[0] if self.trackable_parents else self.trackable

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    @cached_property
    def tracked_changes(self) -> dict[str, FieldChange]:
        """``{field: FieldChange}`` for every tracked field the record touched.

        Fields the root type does not track are left out even when the record
        carries values for them.
        """
        root = self.root_type_name
        return compute_tracked_changes(
            self._record.original,
            self._record.modified,
            lambda field_name: self._metadata.is_tracked(root, field_name),
        )

    @cached_property
    def tracked_edits(self) -> EditSummary:
        """The change set sorted into add/remove/modify/array/embeds_many."""
        root = self.root_type_name
        return classify_changes(
            self.tracked_changes,
            lambda field_name: self._metadata.is_embeds_many(root, field_name),
        )

    @cached_property
    def affected(self) -> dict[str, Any]:
        """One value per tracked field: before-values for destroys, after-values otherwise."""
        return affected_values(self.tracked_changes, self._record.action)

    # -------------------------------------------------------------------------
    # Attribute replays
    # -------------------------------------------------------------------------

    def undo_attrs(self, modifier: Any = None) -> dict[str, Any]:
        """Attributes that revert the trackable to its state before the change.

        Fields introduced by the change have no earlier value and are set to
        None so the store clears them.
        """
        attrs = copy.deepcopy(self.affected)
        for key in self._record.modified:
            attrs.pop(key, None)
        attrs.update(copy.deepcopy(self._record.original))
        attrs[self._modifier_field()] = modifier
        for key in self._record.modified:
            if key not in attrs:
                attrs[key] = None
        return self._localize(attrs)

    def redo_attrs(self, modifier: Any = None) -> dict[str, Any]:
        """Attributes that re-apply the change to the trackable."""
        attrs = copy.deepcopy(self.affected)
        for key in self._record.original:
            attrs.pop(key, None)
        attrs.update(copy.deepcopy(self._record.modified))
        attrs[self._modifier_field()] = modifier
        return self._localize(attrs)

    # -------------------------------------------------------------------------
    # Public replay entrypoints
    # -------------------------------------------------------------------------

    def undo(self, modifier: Any = None) -> Any:
        """Reverse the recorded change.

        Args:
            modifier: Identity recorded as the modifier of the reverted document.

        Returns:
            The mutated, re-created or destroyed document.
        """
        return self._replay(Direction.UNDO, modifier)

    def redo(self, modifier: Any = None) -> Any:
        """Re-apply the recorded change.

        Args:
            modifier: Identity recorded as the modifier of the document.

        Returns:
            The mutated, re-created or destroyed document.
        """
        return self._replay(Direction.REDO, modifier)

    def _replay(self, direction: Direction, modifier: Any) -> Any:
        operation = self._operations[(self._record.action, direction)]
        logger.info(
            "Replaying tracked change",
            tracker_id=self._record.id,
            action=self._record.action.value,
            direction=direction.value,
            operation=operation.__name__.lstrip("_"),
            chain=[step.as_key() for step in self._record.association_chain],
        )
        return operation(self, modifier)

    def _apply_undo_attrs(self, modifier: Any) -> Any:
        doc = self.trackable
        self._store.mutate_attributes(doc, self.undo_attrs(modifier))
        return doc

    def _apply_redo_attrs(self, modifier: Any) -> Any:
        doc = self.trackable
        self._store.mutate_attributes(doc, self.redo_attrs(modifier))
        return doc

    def _re_destroy(self, modifier: Any) -> Any:
        doc = self.trackable
        self._store.destroy(doc)
        logger.debug("Destroyed trackable", tracker_id=self._record.id, root_type=self.root_type_name)
        return doc

    def _re_create(self, modifier: Any) -> Any:
        # A destroy record keeps the full document in `original`, a create in `modified`.
        snapshot = copy.deepcopy(
            self._record.original if self._record.action is Action.DESTROY else self._record.modified
        )
        if not snapshot:
            raise MalformedRecordError(
                message="Record has no snapshot to re-create the document from",
                tracker_id=self._record.id,
                action=self._record.action.value,
            )
        if self._is_embedded:
            return self._create_on_parent(self._localize(snapshot))
        return self._create_standalone(snapshot)

    def _create_standalone(self, snapshot: dict[str, Any]) -> Any:
        doc_id = snapshot.get("_id")
        if doc_id is None:
            raise MalformedRecordError(
                message="Snapshot has no _id to restore a root document with",
                tracker_id=self._record.id,
            )
        doc = self._store.new_root(self.root_type_name, self._localize(snapshot))
        self._store.assign_id(doc, doc_id)
        self._store.save(doc)
        logger.debug("Re-created root document", tracker_id=self._record.id, doc_id=doc_id)
        return doc

    def _create_on_parent(self, attrs: dict[str, Any]) -> Any:
        name = self._record.association_chain[-1].name
        parent = self.trackable_parent
        parent_type = self._store.type_name_of(parent)
        if self._metadata.is_embeds_one(parent_type, name):
            doc = self._store.create_embedded_one(parent, name, attrs)
        elif self._metadata.is_embeds_many(parent_type, name):
            doc = self._store.append_embedded_many(parent, name, attrs)
        else:
            raise ModelingContractViolation(
                message="Association is neither embeds-one nor embeds-many",
                type_name=parent_type,
                relation=name,
            )
        logger.debug("Re-created embedded document", tracker_id=self._record.id, relation=name)
        return doc

    _operations: dict[tuple[Action, Direction], Callable[[HistoryTracker, Any], Any]] = {
        (Action.CREATE, Direction.UNDO): _re_destroy,
        (Action.CREATE, Direction.REDO): _re_create,
        (Action.UPDATE, Direction.UNDO): _apply_undo_attrs,
        (Action.UPDATE, Direction.REDO): _apply_redo_attrs,
        (Action.DESTROY, Direction.UNDO): _re_create,
        (Action.DESTROY, Direction.REDO): _re_destroy,
    }

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def _is_embedded(self) -> bool:
        return len(self._record.association_chain) > 1

    def _modifier_field(self) -> str:
        return self._metadata.modifier_field_name(self._store.type_name_of(self.trackable))

    def _localize(self, attrs: dict[str, Any]) -> dict[str, Any]:
        return localize_keys(
            attrs,
            self._metadata.localized_field_names(self.root_type_name),
            suffix=self._settings.localized_field_suffix,
        )
