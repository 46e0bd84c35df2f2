"""Append-only in-memory repository for change records.

Stores ChangeRecord instances by id and keeps two secondary indexes, one by
scope and one by association chain, mirroring the indexes a database-backed
tracker collection carries. Records are never updated or deleted.

In production this would be backed by the document database holding the
tracker collection; the in-memory implementation keeps tests hermetic.
"""

from __future__ import annotations

import bisect

from history_engine.core.models import AssociationStep, ChangeRecord, chain_key
from history_engine.errors import NotFoundError


def _version_of(record: ChangeRecord) -> int:
    return record.version if record.version is not None else 0


class InMemoryTrackerRepository:
    """ITrackerRepository implementation keeping records in memory."""

    def __init__(self) -> None:
        """Initialize an empty repository."""
        self._records: dict[str, ChangeRecord] = {}
        # { scope: list[ChangeRecord] } in append order
        self._by_scope: dict[str, list[ChangeRecord]] = {}
        # { chain_key: list[ChangeRecord] } sorted by version, with a parallel
        # list of versions for bisect
        self._by_chain: dict[tuple, list[ChangeRecord]] = {}
        self._chain_versions: dict[tuple, list[int]] = {}

    def append(self, record: ChangeRecord) -> None:
        """Append a ChangeRecord.

        Args:
            record: The record to store.

        Raises:
            ValueError: If a record with the same id is already stored.
        """
        if record.id in self._records:
            raise ValueError(f"Tracker record {record.id} already exists")
        self._records[record.id] = record

        if record.scope is not None:
            self._by_scope.setdefault(record.scope, []).append(record)

        key = chain_key(record.association_chain)
        records = self._by_chain.setdefault(key, [])
        versions = self._chain_versions.setdefault(key, [])
        index = bisect.bisect_right(versions, _version_of(record))
        records.insert(index, record)
        versions.insert(index, _version_of(record))

    def get(self, tracker_id: str) -> ChangeRecord:
        record = self._records.get(tracker_id)
        if record is None:
            raise NotFoundError(message="Tracker record not found", tracker_id=tracker_id)
        return record

    def find_by_scope(self, scope: str) -> list[ChangeRecord]:
        return list(self._by_scope.get(scope, []))

    def find_by_association_chain(self, chain: list[AssociationStep]) -> list[ChangeRecord]:
        return list(self._by_chain.get(chain_key(chain), []))

    def find_for_trackable(self, chain: list[AssociationStep]) -> list[ChangeRecord]:
        """Return records for ``chain`` and for documents embedded below it.

        Records are ordered by creation time.
        """
        prefix = chain_key(chain)
        matches = [
            record
            for key, records in self._by_chain.items()
            if key[: len(prefix)] == prefix
            for record in records
        ]
        return sorted(matches, key=lambda record: record.created_at)

    def latest_version(self, chain: list[AssociationStep]) -> int:
        """Return the highest version recorded for ``chain``, 0 if none."""
        versions = self._chain_versions.get(chain_key(chain), [])
        return versions[-1] if versions else 0

    def count(self) -> int:
        return len(self._records)
