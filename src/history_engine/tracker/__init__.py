"""History tracker: change classification and undo/redo reconstruction.

Classifies the field edits captured by a ChangeRecord and replays the
record against the live document tree in either direction, locating
embedded documents through the record's association chain.
"""

from __future__ import annotations

from history_engine.tracker.classifier import (
    ABSENT,
    EditSummary,
    FieldChange,
    affected_values,
    classify,
    compute_tracked_changes,
    embeds_many_delta,
)
from history_engine.tracker.localizer import localize_keys
from history_engine.tracker.reconstructor import HistoryTracker
from history_engine.tracker.recorder import HistoryRecorder
from history_engine.tracker.resolver import PathResolver

__all__ = [
    "ABSENT",
    "EditSummary",
    "FieldChange",
    "HistoryRecorder",
    "HistoryTracker",
    "PathResolver",
    "affected_values",
    "classify",
    "compute_tracked_changes",
    "embeds_many_delta",
    "localize_keys",
]
