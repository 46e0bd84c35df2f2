"""Change diffing and undo/redo reconstruction for embedded document history.

Typical use:

    >>> settings = configure_logging()
    >>> registry = TypeRegistry(settings)
    >>> registry.register(TypeSpec(name="Post", embeds_many={"comments": "Comment"}))
    >>> store = InMemoryDocumentStore(registry)
    >>> tracker = HistoryTracker(record, store, registry, settings)
    >>> tracker.tracked_edits.to_dict()
    >>> tracker.undo(modifier="user-1")
"""

from history_engine.adapters.document_store import Document, InMemoryDocumentStore
from history_engine.adapters.tracker_store import InMemoryTrackerRepository
from history_engine.adapters.type_registry import TypeRegistry, TypeSpec
from history_engine.core.models import Action, AssociationStep, ChangeRecord, Direction
from history_engine.errors import (
    HistoryEngineError,
    MalformedRecordError,
    ModelingContractViolation,
    MutationFailureError,
    NotFoundError,
)
from history_engine.observability import configure_logging
from history_engine.settings import Settings
from history_engine.tracker import (
    EditSummary,
    FieldChange,
    HistoryRecorder,
    HistoryTracker,
    PathResolver,
    classify,
    localize_keys,
)

__version__ = "0.1.0"

__all__ = [
    "Action",
    "AssociationStep",
    "ChangeRecord",
    "Direction",
    "Document",
    "EditSummary",
    "FieldChange",
    "HistoryEngineError",
    "HistoryRecorder",
    "HistoryTracker",
    "InMemoryDocumentStore",
    "InMemoryTrackerRepository",
    "MalformedRecordError",
    "ModelingContractViolation",
    "MutationFailureError",
    "NotFoundError",
    "PathResolver",
    "Settings",
    "TypeRegistry",
    "TypeSpec",
    "classify",
    "configure_logging",
    "localize_keys",
]
