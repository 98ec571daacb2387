"""
Command Results Domain Model

A CommandResult is the tagged outcome of one dispatch: either a success
carrying display text, or a failure carrying an ErrorKind and display
text. Presentation code switches on the tag instead of sniffing the text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a failed dispatch."""

    PARSE = "parse"
    VALIDATION = "validation"
    PROVIDER = "provider"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class CommandResult:
    """Result of a command execution."""

    success: bool
    message: str
    name: str = ""
    error_kind: ErrorKind | None = None

    def __post_init__(self) -> None:
        if self.success and self.error_kind is not None:
            raise ValueError("A successful result cannot carry an error kind")
        if not self.success and self.error_kind is None:
            raise ValueError("A failed result must carry an error kind")

    @classmethod
    def ok(cls, message: str, name: str = "") -> CommandResult:
        return cls(success=True, message=message, name=name)

    @classmethod
    def err(cls, error_kind: ErrorKind, message: str, name: str = "") -> CommandResult:
        return cls(success=False, message=message, name=name, error_kind=error_kind)
