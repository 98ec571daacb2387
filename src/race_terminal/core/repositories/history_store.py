from __future__ import annotations

import logging
from collections.abc import Iterator

from race_terminal.core.domain.history import HistoryEntry

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only, in-memory scrollback of executed commands.

    Insertion order is authoritative. Entries are never mutated or removed;
    display order is the reverse of insertion order.
    """

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def append(self, entry: HistoryEntry) -> None:
        """Append one complete entry."""
        if not isinstance(entry, HistoryEntry):
            raise TypeError("HistoryStore only accepts HistoryEntry instances.")
        self._entries.append(entry)
        logger.debug("History entry #%d appended: %s", len(self._entries), entry.command)

    def all(self) -> tuple[HistoryEntry, ...]:
        """Return every entry in insertion order."""
        return tuple(self._entries)

    def display(self, limit: int | None = None) -> tuple[HistoryEntry, ...]:
        """Return entries newest first, optionally capped to the latest `limit`."""
        newest_first = tuple(reversed(self._entries))
        if limit is None:
            return newest_first
        return newest_first[: max(limit, 0)]

    def last(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(tuple(self._entries))
