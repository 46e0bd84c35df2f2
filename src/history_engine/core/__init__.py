"""Core models and collaborator interfaces of the history engine."""

__all__: list[str] = []
