"""Change record schema for the history engine.

Every tracked create, update or destroy of a document is captured as an
immutable ChangeRecord. The record carries the field values before
(``original``) and after (``modified``) the change together with the
association chain locating the changed document inside its root aggregate,
which is all the reconstructor needs to undo or redo the change later.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Action(StrEnum):
    """Kind of change captured by a ChangeRecord."""

    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


class Direction(StrEnum):
    """Which way a ChangeRecord is being replayed."""

    UNDO = "undo"
    REDO = "redo"


class AssociationStep(BaseModel):
    """One step of an association chain.

    The first step of a chain names the root document's type; every later
    step names an embedded association on the previous document. ``id`` is
    required for the root and for embeds-many steps and ignored for
    embeds-one steps.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Root type name or embedded association name")
    id: Any = Field(default=None, description="Document id within the root collection or relation")

    def as_key(self) -> tuple[str, Any]:
        return (self.name, self.id)


def chain_key(chain: list[AssociationStep]) -> tuple[tuple[str, Any], ...]:
    """Return a hashable key for an association chain."""
    return tuple(step.as_key() for step in chain)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChangeRecord(BaseModel):
    """Immutable record of one tracked document change.

    Attributes:
        id: UUID v4 string identifying the tracker record.
        association_chain: Path from the root aggregate to the changed
            document. Never empty for a usable record.
        modified: Field values after the change. Empty for a destroy.
        original: Field values before the change. Empty for a create.
        action: The kind of change.
        modifier_id: Identity of whoever made the change, if known.
        version: Version of the trackable after the change.
        scope: Root type name the change is scoped to.
        created_at: UTC timestamp the record was captured.
        updated_at: UTC timestamp of the last write of the record.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Tracker record id")
    association_chain: list[AssociationStep] = Field(
        default_factory=list, description="Path from the root aggregate to the changed document"
    )
    modified: dict[str, Any] = Field(default_factory=dict, description="Field values after the change")
    original: dict[str, Any] = Field(default_factory=dict, description="Field values before the change")
    action: Action = Field(..., description="Kind of change")
    modifier_id: Any = Field(default=None, description="Identity of the actor who made the change")
    version: int | None = Field(default=None, description="Trackable version after the change")
    scope: str | None = Field(default=None, description="Root type name the change is scoped to")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def to_document(self) -> dict[str, Any]:
        """Export to the persisted tracker document shape."""
        return {
            "_id": self.id,
            "association_chain": [{"name": step.name, "id": step.id} for step in self.association_chain],
            "modified": dict(self.modified),
            "original": dict(self.original),
            "version": self.version,
            "action": self.action.value,
            "scope": self.scope,
            "modifier_id": self.modifier_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> ChangeRecord:
        """Import from a persisted tracker document."""
        payload = {key: value for key, value in data.items() if key != "_id"}
        if "_id" in data:
            payload["id"] = data["_id"]
        return cls.model_validate(payload)
