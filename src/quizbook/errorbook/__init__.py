"""Persistent error collections built from missed quiz questions."""

from __future__ import annotations

from .storage import JsonFileStore, KeyValueStore, MemoryStore, StorageError
from .store import (
    COLLECTIONS_KEY,
    LEGACY_KEY,
    TEMP_COLLECTION_ID,
    ErrorBookStore,
    ErrorCollection,
)

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "StorageError",
    "COLLECTIONS_KEY",
    "LEGACY_KEY",
    "TEMP_COLLECTION_ID",
    "ErrorBookStore",
    "ErrorCollection",
]
