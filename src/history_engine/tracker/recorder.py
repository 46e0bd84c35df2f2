"""Change recorder for tracked documents.

Provides the helper that document model integrations call whenever a
tracked document is created, updated or destroyed. Handles version
numbering, scoping and snapshot trimming so callers only supply the
association chain and the document's state before and after the change.
"""

from __future__ import annotations

from typing import Any

from history_engine.core.interfaces import ITrackerRepository, ITypeMetadata
from history_engine.core.models import Action, AssociationStep, ChangeRecord
from history_engine.errors import MalformedRecordError
from history_engine.observability import get_logger

logger = get_logger(__name__)


class HistoryRecorder:
    """Records tracked document changes into a tracker repository.

    Args:
        repository: The append-only repository that receives records.
        metadata: Tracking metadata used to trim update snapshots down to
            tracked fields.
    """

    def __init__(self, repository: ITrackerRepository, metadata: ITypeMetadata) -> None:
        self._repository = repository
        self._metadata = metadata

    def record(
        self,
        association_chain: list[AssociationStep],
        action: Action,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        modifier_id: Any = None,
        scope: str | None = None,
    ) -> ChangeRecord:
        """Build, store and return the ChangeRecord for one change.

        Creates keep the full ``after`` state as ``modified``; destroys keep
        the full ``before`` state as ``original`` so that either can be
        re-created later. Updates keep only the tracked fields whose value
        changed.

        Args:
            association_chain: Path from the root aggregate to the document.
            action: The kind of change.
            before: Document state before the change. Required for updates
                and destroys.
            after: Document state after the change. Required for creates and
                updates.
            modifier_id: Identity of the actor making the change.
            scope: Scope to file the record under. Defaults to the root type.

        Returns:
            The stored ChangeRecord, versioned one above the trackable's
            previous record.

        Raises:
            MalformedRecordError: If the chain is empty or a required
                snapshot is missing.
        """
        if not association_chain:
            raise MalformedRecordError(message="Association chain is empty")
        if action is not Action.CREATE and before is None:
            raise MalformedRecordError(message="State before the change is required", action=action.value)
        if action is not Action.DESTROY and after is None:
            raise MalformedRecordError(message="State after the change is required", action=action.value)

        root_type = association_chain[0].name
        if action is Action.CREATE:
            original: dict[str, Any] = {}
            modified = dict(after or {})
        elif action is Action.DESTROY:
            original = dict(before or {})
            modified = {}
        else:
            original, modified = self._changed_fields(root_type, before or {}, after or {})

        record = ChangeRecord(
            association_chain=list(association_chain),
            original=original,
            modified=modified,
            action=action,
            modifier_id=modifier_id,
            version=self._repository.latest_version(association_chain) + 1,
            scope=scope or root_type,
        )
        self._repository.append(record)

        logger.info(
            "Recorded tracked change",
            tracker_id=record.id,
            action=action.value,
            scope=record.scope,
            version=record.version,
            fields=sorted(set(original) | set(modified)),
        )
        return record

    def _changed_fields(
        self,
        root_type: str,
        before: dict[str, Any],
        after: dict[str, Any],
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        original: dict[str, Any] = {}
        modified: dict[str, Any] = {}
        for key in list(after) + [key for key in before if key not in after]:
            if before.get(key) == after.get(key) or not self._metadata.is_tracked(root_type, key):
                continue
            if key in before:
                original[key] = before[key]
            if key in after:
                modified[key] = after[key]
        return original, modified
