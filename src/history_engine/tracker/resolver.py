"""Association chain resolution.

Walks an association chain from the root aggregate down to the changed
document, returning every document along the way. Default scoping on the
root collection and on embeds-many relations is bypassed so that
soft-deleted or otherwise filtered documents are still reachable.
"""

from __future__ import annotations

from typing import Any

from history_engine.core.interfaces import IDocumentStore, ITypeMetadata
from history_engine.core.models import AssociationStep
from history_engine.errors import MalformedRecordError, ModelingContractViolation, NotFoundError


class PathResolver:
    """Resolves association chains against a document store.

    Args:
        store: The live document store.
        metadata: Relation metadata used to tell embeds-one from embeds-many.
    """

    def __init__(self, store: IDocumentStore, metadata: ITypeMetadata) -> None:
        self._store = store
        self._metadata = metadata

    def resolve(self, chain: list[AssociationStep]) -> list[Any]:
        """Resolve every step of ``chain``.

        Args:
            chain: Association chain, root step first.

        Returns:
            Documents from the root aggregate (head) to the addressed
            document (tail).

        Raises:
            MalformedRecordError: If the chain is empty.
            NotFoundError: If any step addresses no document.
            ModelingContractViolation: If a step names a relation that is not
                an embedded relation of the current document's type.
        """
        if not chain:
            raise MalformedRecordError(message="Association chain is empty")

        documents: list[Any] = []
        current: Any = None
        for step in chain:
            current = self.resolve_step(current, step)
            documents.append(current)
        return documents

    def resolve_step(self, current: Any, step: AssociationStep) -> Any:
        """Resolve one chain step below ``current``; ``None`` means the root."""
        if current is None:
            doc = self._store.find_root(step.name, step.id, ignore_default_filters=True)
            if doc is None:
                raise NotFoundError(
                    message="Root document not found", type_name=step.name, doc_id=step.id
                )
            return doc

        type_name = self._store.type_name_of(current)
        if self._metadata.is_embeds_one(type_name, step.name):
            doc = self._store.get_embedded_one(current, step.name)
        elif self._metadata.is_embeds_many(type_name, step.name):
            doc = self._store.get_embedded_many(current, step.name, step.id, ignore_default_filters=True)
        else:
            raise ModelingContractViolation(
                message="Association is neither embeds-one nor embeds-many",
                type_name=type_name,
                relation=step.name,
            )

        if doc is None:
            raise NotFoundError(
                message="Embedded document not found",
                type_name=type_name,
                relation=step.name,
                doc_id=step.id,
            )
        return doc
