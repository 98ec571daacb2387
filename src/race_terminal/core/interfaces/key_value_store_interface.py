from __future__ import annotations

from abc import ABC, abstractmethod


class IKeyValueStore(ABC):
    """Persistent string key-value store shared by every tab of a session.

    Writes are whole-value replacements. Implementations raise
    PersistenceError when the underlying medium cannot be read or written.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value stored under key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key if present."""
