"""
Abstract Storage Interface

DESIGN DECISION: We define a small key-value port for all persistence.
This allows us to:
1. Swap SQLite for another embedded or external store later
2. Use in-memory storage for testing
3. Keep the session guard and ledger free of storage details

The interface is intentionally tiny - get / set / delete / list by prefix.
Values are strings; the JSON helpers handle (de)serialization so every
record is stored as JSON text.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class CorruptRecordError(StorageError):
    """A stored value could not be decoded."""

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Corrupt record at '{key}': {reason}")


class KeyValueStore(ABC):
    """
    Abstract interface for flat, string-keyed storage.

    Keys follow the '<namespace>_<id-or-email>' convention
    (see bookkeeper.services.storage.keys).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a raw value.

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a raw value, replacing any previous one.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if something was removed, False if the key was absent
        """
        pass

    @abstractmethod
    def list_keys(self, prefix: str = "") -> list[str]:
        """
        List keys starting with prefix, sorted ascending.
        """
        pass

    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Read and decode a JSON value.

        Raises:
            CorruptRecordError: If the stored text is not valid JSON
        """
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptRecordError(key, str(e)) from e

    def set_json(self, key: str, value: Any) -> None:
        """Encode a JSON-compatible value and store it."""
        self.set(key, json.dumps(value, ensure_ascii=False))
