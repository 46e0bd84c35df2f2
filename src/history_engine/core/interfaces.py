"""Abstract interfaces (Protocol classes) for the history engine.

Defines the contracts between the tracker layer and the adapter layer using
Python's typing.Protocol. The resolver and reconstructor depend on these
protocols only, never on a concrete document store or schema registry, so
any document model can be plugged in by implementing them.

Protocols defined:
- IDocumentStore
- ITypeMetadata
- ITrackerRepository
"""

from typing import Any, Protocol

from history_engine.core.models import AssociationStep, ChangeRecord


class IDocumentStore(Protocol):
    """Contract for reading and writing live documents.

    Documents are opaque to the engine; it only passes them back to the
    store. Write methods raise MutationFailureError when the store rejects
    the write.
    """

    def find_root(self, type_name: str, doc_id: Any, ignore_default_filters: bool = True) -> Any | None:
        """Look up a root document by type and id.

        Args:
            type_name: Root document type.
            doc_id: The root document id.
            ignore_default_filters: Include documents hidden by the type's
                default scope (soft-deleted, archived, etc).

        Returns:
            The document, or None if it does not exist.
        """
        ...

    def get_embedded_one(self, doc: Any, name: str) -> Any | None:
        """Return the single document embedded under ``name``, if any."""
        ...

    def get_embedded_many(
        self,
        doc: Any,
        name: str,
        doc_id: Any,
        ignore_default_filters: bool = True,
    ) -> Any | None:
        """Return the element with ``doc_id`` of the collection embedded under ``name``."""
        ...

    def create_embedded_one(self, parent: Any, name: str, attrs: dict[str, Any]) -> Any:
        """Create and persist a document as the embeds-one relation ``name`` of ``parent``."""
        ...

    def append_embedded_many(self, parent: Any, name: str, attrs: dict[str, Any]) -> Any:
        """Create and persist a document appended to the embeds-many relation ``name``."""
        ...

    def mutate_attributes(self, doc: Any, attrs: dict[str, Any]) -> None:
        """Write ``attrs`` onto ``doc`` and persist it.

        Raises:
            MutationFailureError: If the store rejects the write.
        """
        ...

    def destroy(self, doc: Any) -> None:
        """Delete ``doc`` (root or embedded)."""
        ...

    def new_root(self, type_name: str, attrs: dict[str, Any]) -> Any:
        """Instantiate an unsaved root document."""
        ...

    def assign_id(self, doc: Any, doc_id: Any) -> None:
        """Set the id of an unsaved document."""
        ...

    def save(self, doc: Any) -> None:
        """Persist a new or changed document."""
        ...

    def type_name_of(self, doc: Any) -> str:
        """Return the declared type name of ``doc``."""
        ...


class ITypeMetadata(Protocol):
    """Contract for per-type tracking and relation metadata."""

    def is_tracked(self, type_name: str, field_name: str) -> bool:
        """Return True if changes to ``field_name`` are tracked on ``type_name``."""
        ...

    def is_embeds_many(self, type_name: str, field_name: str) -> bool:
        """Return True if ``field_name`` is an embeds-many relation of ``type_name``."""
        ...

    def is_embeds_one(self, type_name: str, field_name: str) -> bool:
        """Return True if ``field_name`` is an embeds-one relation of ``type_name``."""
        ...

    def localized_field_names(self, type_name: str) -> set[str]:
        """Return the fields ``type_name`` stores per locale."""
        ...

    def modifier_field_name(self, type_name: str) -> str:
        """Return the field that records who modified a ``type_name`` document."""
        ...


class ITrackerRepository(Protocol):
    """Repository contract for ChangeRecord persistence."""

    def append(self, record: ChangeRecord) -> None:
        """Persist a new change record."""
        ...

    def get(self, tracker_id: str) -> ChangeRecord:
        """Retrieve a change record by id.

        Raises:
            NotFoundError: If no record exists with the given id.
        """
        ...

    def find_by_scope(self, scope: str) -> list[ChangeRecord]:
        """List records for a root type, oldest first."""
        ...

    def find_by_association_chain(self, chain: list[AssociationStep]) -> list[ChangeRecord]:
        """List records whose chain equals ``chain``, by version ascending."""
        ...

    def find_for_trackable(self, chain: list[AssociationStep]) -> list[ChangeRecord]:
        """List records for ``chain`` and every document embedded below it."""
        ...

    def latest_version(self, chain: list[AssociationStep]) -> int:
        """Return the highest version recorded for ``chain``, 0 if none."""
        ...
