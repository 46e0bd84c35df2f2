"""Error taxonomy for the history engine.

Every failure raised by the resolver, classifier or reconstructor derives from
HistoryEngineError so callers can catch the engine's errors as a family while
still distinguishing the cases that matter:

- ModelingContractViolation: the stored association chain disagrees with the
  declared schema. Programmer error, never recovered automatically.
- NotFoundError: an association chain step resolves to no document.
- MutationFailureError: the document store rejected a write.
- MalformedRecordError: the change record cannot support the requested
  reconstruction (empty chain, missing snapshot, missing id).
"""

from __future__ import annotations

from typing import Any


class HistoryEngineError(Exception):
    """Base class for history engine errors.

    Args:
        message: Human-readable description of the failure.
        **details: Structured context (tracker id, chain step, field names)
            kept on the exception for callers and log processors.
    """

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{self.message} ({context})"


class ModelingContractViolation(HistoryEngineError):
    """An association is neither an embeds-one nor an embeds-many relation."""


class NotFoundError(HistoryEngineError):
    """A document addressed by an association chain does not exist."""


class MutationFailureError(HistoryEngineError):
    """The document store rejected a create, update, save or destroy."""


class MalformedRecordError(HistoryEngineError):
    """A change record lacks the data required for the requested operation."""
