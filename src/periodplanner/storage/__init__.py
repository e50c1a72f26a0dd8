"""Persistence backends for planner state."""

from periodplanner.storage.backends import (
    InMemoryStore,
    JsonDirectoryStore,
    KeyValueStore,
    StorageKey,
)

__all__ = [
    "InMemoryStore",
    "JsonDirectoryStore",
    "KeyValueStore",
    "StorageKey",
]
