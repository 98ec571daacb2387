"""
Assembly of one interpreter session per browser tab.

Components that must be shared between tabs (key-value store, broadcast hub
and data providers) are injected; everything else is built per session.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from pathlib import Path

from race_terminal.connectors.ergast import ReferenceDataConnector
from race_terminal.connectors.openf1 import LiveTimingConnector
from race_terminal.connectors.racing_results import RaceResultsConnector
from race_terminal.core.commands.handlers.system_handlers import SystemCommandHandlers
from race_terminal.core.commands.parser import CommandParser
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import ConfigurationError
from race_terminal.core.config.app_config import AppConfig
from race_terminal.core.domain.command_descriptor import ProviderKind
from race_terminal.core.domain.history import HistoryEntry
from race_terminal.core.domain.themes import ThemeCatalog
from race_terminal.core.interfaces.data_provider_interface import IDataProvider
from race_terminal.core.interfaces.key_value_store_interface import IKeyValueStore
from race_terminal.core.repositories.history_store import HistoryStore
from race_terminal.core.repositories.key_value_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from race_terminal.core.services.autocomplete import AutocompleteIndex
from race_terminal.core.services.change_channels import (
    BroadcastHub,
    LocalChangeChannel,
)
from race_terminal.core.services.clock import Clock, ClockTicker, SystemClock
from race_terminal.core.services.command_dispatcher import CommandDispatcher
from race_terminal.core.services.output_formatter import OutputFormatter
from race_terminal.core.services.session_service import SessionStateService

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> IKeyValueStore:
    path = config.session.storage_path
    if path:
        return JsonFileKeyValueStore(Path(path).expanduser())
    return InMemoryKeyValueStore()


def build_providers(config: AppConfig) -> dict[ProviderKind, IDataProvider]:
    """Create the default HTTP connectors from the providers section."""
    settings = config.providers
    common = {
        "timeout": settings.timeout,
        "max_retries": settings.max_retries,
        "retry_delay": settings.retry_delay,
    }
    return {
        ProviderKind.REFERENCE: ReferenceDataConnector(settings.reference_base_url, **common),
        ProviderKind.LIVE: LiveTimingConnector(settings.live_base_url, **common),
        ProviderKind.RESULTS: RaceResultsConnector(settings.results_base_url, **common),
    }


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def build_theme_catalog(config: AppConfig) -> ThemeCatalog:
    try:
        return ThemeCatalog(default_id=config.session.default_theme)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


class TerminalSession:
    """One tab's interpreter: parser, dispatcher, history and session state."""

    def __init__(
        self,
        config: AppConfig,
        providers: Mapping[ProviderKind, IDataProvider],
        store: IKeyValueStore,
        hub: BroadcastHub,
        tab_id: str | None = None,
        registry: CommandRegistry | None = None,
        themes: ThemeCatalog | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.tab_id = tab_id or uuid.uuid4().hex
        self.config = config
        settings = config.session
        clock = clock or SystemClock()

        self.registry = registry or CommandRegistry(command_prefix=settings.command_prefix)
        self.parser = CommandParser(
            self.registry,
            command_prefix=settings.command_prefix,
            plain_text_policy=settings.plain_text_policy,
        )
        self.formatter = OutputFormatter(self.registry)
        self.history = HistoryStore()
        self.session = SessionStateService(
            store,
            LocalChangeChannel(),
            hub.channel(self.tab_id),
            themes=themes or build_theme_catalog(config),
            clock=clock,
            default_actor=settings.default_actor,
        )
        self.dispatcher = CommandDispatcher(
            self.registry,
            self.parser,
            self.formatter,
            self.history,
            self.session,
            providers,
            system_handlers=SystemCommandHandlers(self.registry, self.session),
            clock=clock,
            dispatch_timeout=settings.dispatch_timeout,
        )
        self.autocomplete = AutocompleteIndex(self.registry)
        self.ticker = ClockTicker(self.session, clock, interval=settings.clock_tick)

    def start(self) -> None:
        """Start the uptime ticker. Must be called from a running event loop."""
        self.ticker.start()

    def uptime(self) -> str:
        """Uptime from the latest tick, or computed now if none has fired yet."""
        tick = self.ticker.last_tick
        return tick.uptime if tick is not None else self.session.uptime()

    async def submit(self, line: str) -> HistoryEntry | None:
        return await self.dispatcher.submit(line)

    async def close(self) -> None:
        await self.ticker.stop()
        self.session.close()


class TerminalSessionManager:
    """Sessions keyed by tab id, sharing one store, hub and provider set."""

    def __init__(
        self,
        config: AppConfig,
        providers: Mapping[ProviderKind, IDataProvider] | None = None,
        store: IKeyValueStore | None = None,
        hub: BroadcastHub | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.providers = dict(providers) if providers is not None else build_providers(config)
        self.store = store if store is not None else build_store(config)
        self.hub = hub or BroadcastHub()
        self.registry = CommandRegistry(command_prefix=config.session.command_prefix)
        self.themes = build_theme_catalog(config)
        self._clock = clock
        self._sessions: dict[str, TerminalSession] = {}

    def get_or_create(self, tab_id: str) -> TerminalSession:
        """Return the tab's session, opening it if needed.

        A session opened inside a running event loop starts its ticker at once.
        """
        session = self._sessions.get(tab_id)
        if session is None:
            session = TerminalSession(
                self.config,
                self.providers,
                self.store,
                self.hub,
                tab_id=tab_id,
                registry=self.registry,
                themes=self.themes,
                clock=self._clock,
            )
            self._sessions[tab_id] = session
            if _loop_running():
                session.start()
            logger.info("Opened terminal session for tab %s", tab_id)
        return session

    def get(self, tab_id: str) -> TerminalSession | None:
        return self._sessions.get(tab_id)

    async def close(self, tab_id: str) -> None:
        session = self._sessions.pop(tab_id, None)
        if session is not None:
            await session.close()
            logger.info("Closed terminal session for tab %s", tab_id)

    async def aclose(self) -> None:
        for tab_id in list(self._sessions):
            await self.close(tab_id)
        for provider in self.providers.values():
            await provider.aclose()

    def __len__(self) -> int:
        return len(self._sessions)
