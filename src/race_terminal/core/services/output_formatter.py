"""
Output formatter.

Turns a dispatch outcome into a tagged CommandResult. Failure text always
begins with the error prefix; success text is scrubbed so it never matches
any of the legacy error markers the web front end still sniffs for.
"""

from __future__ import annotations

import html
import logging
from typing import Any

from race_terminal.constants import ERROR_MARKERS, ERROR_PREFIX
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import (
    DispatchTimeoutError,
    ParseError,
    ProviderError,
    ValidationError,
)
from race_terminal.core.domain.command_descriptor import Invocation
from race_terminal.core.domain.command_results import CommandResult, ErrorKind
from race_terminal.core.services.renderers import RENDERERS, Renderer, render_generic

logger = logging.getLogger(__name__)

NBSP = "\u00a0"

# Replacement for each error marker; none of them contains any marker
_MARKER_SUBSTITUTES: dict[str, str] = {
    "❌": "✖",
    "Error:": f"Error{NBSP}:",
    "not found": f"not{NBSP}found",
    "No ": f"No{NBSP}",
}


def is_error_output(text: str) -> bool:
    """Legacy lexical check used by presentation code that only sees text."""
    stripped = text.lstrip()
    if stripped.startswith("❌") or stripped.startswith("Error:"):
        return True
    return any(marker in text for marker in ERROR_MARKERS)


def neutralize_markers(text: str) -> str:
    for marker, substitute in _MARKER_SUBSTITUTES.items():
        text = text.replace(marker, substitute)
    return text


class OutputFormatter:
    """Renders success payloads and failures into display strings."""

    def __init__(
        self,
        registry: CommandRegistry,
        renderers: dict[Any, Renderer] | None = None,
    ) -> None:
        self._registry = registry
        self._renderers = dict(RENDERERS if renderers is None else renderers)

    def format_success(
        self, invocation: Invocation, payload: dict[str, Any]
    ) -> CommandResult:
        renderer = self._renderers.get(invocation.kind, render_generic)
        text = neutralize_markers(renderer(payload))
        return CommandResult.ok(text, name=invocation.name)

    def format_failure(
        self, error: BaseException, invocation: Invocation | None = None
    ) -> CommandResult:
        """
        Build the failure result for an error raised during a dispatch.

        Args:
            error: The parse, validation, provider or unexpected error
            invocation: The invocation, when parsing got that far

        Returns:
            A failed CommandResult whose message starts with the error prefix
        """
        name = invocation.name if invocation is not None else ""
        kind = self._classify(error)
        lines = [ERROR_PREFIX + self._describe(error)]

        if kind is ErrorKind.PARSE:
            lines.append(f"Type {self._registry.command_prefix}help to see available commands")
        elif kind is ErrorKind.VALIDATION:
            descriptor = invocation.command if invocation is not None else None
            if descriptor is None and isinstance(error, ValidationError):
                descriptor = self._registry.lookup(str(error.details.get("command", "")))
            if descriptor is not None:
                name = descriptor.name
                lines.append(f"Usage: {self._registry.usage(descriptor)}")
        elif kind is ErrorKind.TIMEOUT:
            lines.append("The data source did not respond in time. Please try again later.")

        return CommandResult.err(kind, "\n".join(lines), name=name)

    @staticmethod
    def _classify(error: BaseException) -> ErrorKind:
        if isinstance(error, ParseError):
            return ErrorKind.PARSE
        if isinstance(error, ValidationError):
            return ErrorKind.VALIDATION
        if isinstance(error, DispatchTimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(error, ProviderError) and error.not_found:
            return ErrorKind.NOT_FOUND
        return ErrorKind.PROVIDER

    @staticmethod
    def _describe(error: BaseException) -> str:
        if isinstance(error, (ParseError, ValidationError, ProviderError)):
            return html.escape(error.message, quote=False)
        logger.debug("Hiding unexpected error text from output: %r", error)
        return "Could not fetch data. Please try again later."
