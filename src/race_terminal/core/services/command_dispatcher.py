"""
Command dispatcher.

Drives one tab's interpreter through Idle -> Processing -> Idle. While a
dispatch is in flight every further submission is refused; each accepted,
non-blank line yields exactly one history entry, whether it parsed, failed
validation, succeeded, failed upstream or timed out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

from race_terminal.constants import DEFAULT_DISPATCH_TIMEOUT_SECONDS
from race_terminal.core.commands.handlers.system_handlers import SystemCommandHandlers
from race_terminal.core.commands.parser import CommandParser
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import (
    ConfigurationError,
    DispatchTimeoutError,
    ParseError,
    ProviderError,
    ValidationError,
)
from race_terminal.core.common.logging_utils import get_logger
from race_terminal.core.domain.command_descriptor import (
    CommandKind,
    Invocation,
    ProviderKind,
)
from race_terminal.core.domain.command_results import CommandResult
from race_terminal.core.domain.history import HistoryEntry
from race_terminal.core.interfaces.data_provider_interface import IDataProvider
from race_terminal.core.repositories.history_store import HistoryStore
from race_terminal.core.services.clock import Clock, SystemClock
from race_terminal.core.services.output_formatter import OutputFormatter
from race_terminal.core.services.session_service import SessionStateService

logger = logging.getLogger(__name__)
events = get_logger(__name__)

Route = Callable[[Invocation], Awaitable[dict[str, Any]]]


class DispatchState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"


class CommandDispatcher:
    """Routes parsed invocations and records every outcome in history."""

    def __init__(
        self,
        registry: CommandRegistry,
        parser: CommandParser,
        formatter: OutputFormatter,
        history: HistoryStore,
        session: SessionStateService,
        providers: Mapping[ProviderKind, IDataProvider],
        system_handlers: SystemCommandHandlers | None = None,
        clock: Clock | None = None,
        dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS,
    ) -> None:
        """
        Wire the dispatcher and build its route table.

        Args:
            registry: Command registry
            parser: Parser bound to the same registry
            formatter: Output formatter
            history: History store receiving one entry per dispatch
            session: Session state; supplies the actor and mirrors `processing`
            providers: Data provider per provider kind
            system_handlers: Handlers for system commands
            clock: Time source for entry timestamps
            dispatch_timeout: Seconds a route may run; <= 0 disables the bound

        Raises:
            ConfigurationError: If any registered command has no route
        """
        self._registry = registry
        self._parser = parser
        self._formatter = formatter
        self._history = history
        self._session = session
        self._clock = clock or SystemClock()
        self._timeout = dispatch_timeout if dispatch_timeout > 0 else None
        self._state = DispatchState.IDLE
        self._routes = self._build_routes(
            providers, system_handlers or SystemCommandHandlers(registry, session)
        )

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def processing(self) -> bool:
        return self._state is DispatchState.PROCESSING

    @property
    def dispatch_timeout(self) -> float | None:
        return self._timeout

    def _build_routes(
        self,
        providers: Mapping[ProviderKind, IDataProvider],
        system_handlers: SystemCommandHandlers,
    ) -> dict[CommandKind, Route]:
        routes: dict[CommandKind, Route] = {}
        system_routes = system_handlers.routes()
        problems: list[str] = []

        for descriptor in self._registry.all():
            if descriptor.provider is ProviderKind.SYSTEM:
                handler = system_routes.get(descriptor.kind)
                if handler is None:
                    problems.append(f"no system handler for '{descriptor.name}'")
                    continue
                routes[descriptor.kind] = handler
                continue

            provider = providers.get(descriptor.provider)
            if provider is None:
                problems.append(
                    f"no {descriptor.provider.value} provider for '{descriptor.name}'"
                )
                continue
            if descriptor.name not in provider.supported_commands:
                problems.append(
                    f"provider '{provider.name}' does not answer '{descriptor.name}'"
                )
                continue
            routes[descriptor.kind] = self._provider_route(provider)

        if problems:
            raise ConfigurationError(
                "Command routes are incomplete: " + "; ".join(problems),
                details={"problems": problems},
            )
        return routes

    @staticmethod
    def _provider_route(provider: IDataProvider) -> Route:
        async def route(invocation: Invocation) -> dict[str, Any]:
            payload = await provider.fetch(invocation.name, list(invocation.args))
            if not isinstance(payload, dict):
                raise ProviderError(
                    f"{provider.name} returned malformed data", provider=provider.name
                )
            return payload

        return route

    async def submit(self, line: str) -> HistoryEntry | None:
        """
        Submit one input line.

        Returns:
            The appended entry, or None if the line was blank or a dispatch
            was already in flight
        """
        if self._state is DispatchState.PROCESSING:
            logger.debug("Dispatch in flight; ignoring submission %r", line)
            return None

        text = line.strip()
        if not text:
            return None

        self._set_state(DispatchState.PROCESSING)
        started = time.perf_counter()
        actor = self._session.get().actor
        try:
            result = await self._execute(text)
            entry = HistoryEntry.from_result(
                text, result, actor=actor, timestamp=self._clock.now().isoformat()
            )
            self._history.append(entry)
        finally:
            self._set_state(DispatchState.IDLE)

        events.info(
            "dispatch_completed",
            command=result.name or text.split()[0],
            success=result.success,
            error_kind=result.error_kind.value if result.error_kind else None,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return entry

    async def _execute(self, text: str) -> CommandResult:
        invocation: Invocation | None = None
        try:
            invocation = self._parser.parse(text)
            payload = await self._run(self._routes[invocation.kind], invocation)
            return self._formatter.format_success(invocation, payload)
        except (ParseError, ValidationError) as e:
            logger.debug("Rejected input %r: %s", text, e.message)
            return self._formatter.format_failure(e, invocation)
        except ProviderError as e:
            logger.warning(
                "Provider failure for %r: %s", text, e.message, exc_info=not e.not_found
            )
            return self._formatter.format_failure(e, invocation)
        except Exception as e:
            logger.error("Unexpected error dispatching %r: %s", text, e, exc_info=True)
            return self._formatter.format_failure(e, invocation)

    async def _run(self, route: Route, invocation: Invocation) -> dict[str, Any]:
        if self._timeout is None:
            return await route(invocation)
        try:
            return await asyncio.wait_for(route(invocation), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise DispatchTimeoutError(
                f"{invocation.command.source_label} did not respond within "
                f"{self._timeout:g}s",
                timeout=self._timeout,
                details={"command": invocation.name},
            ) from e

    def _set_state(self, state: DispatchState) -> None:
        self._state = state
        self._session.mark_processing(state is DispatchState.PROCESSING)
