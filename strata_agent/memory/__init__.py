"""Agent memory persisted in the workspace."""

from .store import MemoryStore

__all__ = ["MemoryStore"]
