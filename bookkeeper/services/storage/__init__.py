"""
Storage Services Package

Provides the key-value storage port and its implementations.
SQLite is the durable backend; the in-memory store serves tests.
"""

from bookkeeper.services.storage.interface import (
    CorruptRecordError,
    KeyValueStore,
    NotFoundError,
    StorageError,
)
from bookkeeper.services.storage.memory import InMemoryKeyValueStore
from bookkeeper.services.storage.sqlite import SqliteKeyValueStore
from bookkeeper.services.storage import keys

__all__ = [
    # Interface
    "KeyValueStore",
    # Exceptions
    "CorruptRecordError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    # Key naming
    "keys",
]
