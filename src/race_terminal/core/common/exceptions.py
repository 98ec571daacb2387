"""
Common exception classes for Race Terminal.

This module defines the error taxonomy of the command interpreter. Every
error except ConfigurationError is terminal at the interpreter boundary:
the dispatcher turns it into a formatted history entry and the session
keeps running.
"""

from __future__ import annotations


class RaceTerminalError(Exception):
    """Base exception class for all Race Terminal errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        **kwargs,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        for key, value in (kwargs or {}).items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        error_dict = {
            "message": self.message,
            "type": self.__class__.__name__,
            "details": self.details,
        }
        return {"error": error_dict}


class ParseError(RaceTerminalError):
    """Raised when an input line does not name a registered command."""

    def __init__(
        self, message: str = "unknown command", details: dict | None = None, **kwargs
    ):
        super().__init__(message, details, **kwargs)


class ValidationError(RaceTerminalError):
    """Raised when a recognized command has missing or malformed arguments."""

    def __init__(
        self, message: str = "Validation failed", details: dict | None = None, **kwargs
    ):
        super().__init__(message, details, **kwargs)


class ProviderError(RaceTerminalError):
    """Raised when a data provider fails or has no data for a request."""

    def __init__(
        self,
        message: str = "Provider request failed",
        provider: str | None = None,
        details: dict | None = None,
        *,
        not_found: bool = False,
        status_code: int | None = None,
        **kwargs,
    ):
        super().__init__(message, details, **kwargs)
        self.provider = provider
        self.not_found = not_found
        self.status_code = status_code


class DispatchTimeoutError(ProviderError):
    """Raised when a provider does not settle within the dispatch timeout."""

    def __init__(
        self,
        message: str = "Provider did not respond in time",
        timeout: float | None = None,
        details: dict | None = None,
        **kwargs,
    ):
        super().__init__(message, details=details, **kwargs)
        self.timeout = timeout


class PersistenceError(RaceTerminalError):
    """Raised when the persistent key-value store cannot be read or written."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        key: str | None = None,
        details: dict | None = None,
        **kwargs,
    ):
        det = details.copy() if details else {}
        if key:
            det.setdefault("key", key)
        super().__init__(message, det, **kwargs)
        self.key = key


class ConfigurationError(RaceTerminalError):
    """Raised when there's a configuration issue."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict | None = None,
        **kwargs,
    ):
        super().__init__(message, details, **kwargs)
