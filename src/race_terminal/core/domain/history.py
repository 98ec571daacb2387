from __future__ import annotations

from race_terminal.core.domain.base import ValueObject
from race_terminal.core.domain.command_results import CommandResult, ErrorKind


class HistoryEntry(ValueObject):
    """One executed command and its formatted output, as shown in the scrollback."""

    command: str
    output: str
    actor: str
    timestamp: str
    success: bool = True
    error_kind: ErrorKind | None = None

    @classmethod
    def from_result(
        cls, command: str, result: CommandResult, actor: str, timestamp: str
    ) -> HistoryEntry:
        """Build an entry from a dispatch result, keeping its success tag."""
        return cls(
            command=command,
            output=result.message,
            actor=actor,
            timestamp=timestamp,
            success=result.success,
            error_kind=result.error_kind,
        )
