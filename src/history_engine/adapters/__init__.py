"""Adapters: reference implementations of the engine's collaborators.

Contains:
- type_registry.py : TypeSpec / TypeRegistry (ITypeMetadata)
- document_store.py: Document / InMemoryDocumentStore (IDocumentStore)
- tracker_store.py : InMemoryTrackerRepository (ITrackerRepository)
"""

__all__: list[str] = []
