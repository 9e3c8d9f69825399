"""Services package."""

from bookkeeper.services.notify import (
    ConsoleNotifier,
    DeliveredCode,
    Notifier,
    OutboxNotifier,
)
from bookkeeper.services.storage import (
    CorruptRecordError,
    InMemoryKeyValueStore,
    KeyValueStore,
    NotFoundError,
    SqliteKeyValueStore,
    StorageError,
)

__all__ = [
    # Notification services
    "ConsoleNotifier",
    "DeliveredCode",
    "Notifier",
    "OutboxNotifier",
    # Storage services
    "CorruptRecordError",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "NotFoundError",
    "SqliteKeyValueStore",
    "StorageError",
]
