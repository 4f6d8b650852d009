"""Store module - Persisted file storage adapters."""

from flatcms_core.store.backend import (
    PersistedStore,
    StorageError,
    StorageStats,
)
from flatcms_core.store.memory import MemoryStore
from flatcms_core.store.file import LocalFileSystem

__all__ = [
    "PersistedStore",
    "StorageError",
    "StorageStats",
    "MemoryStore",
    "LocalFileSystem",
]
