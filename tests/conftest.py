from __future__ import annotations

import pytest
from race_terminal.core.commands.parser import CommandParser
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.domain.command_descriptor import ProviderKind
from race_terminal.core.repositories.history_store import HistoryStore
from race_terminal.core.repositories.key_value_store import InMemoryKeyValueStore
from race_terminal.core.services.change_channels import (
    BroadcastHub,
    LocalChangeChannel,
)
from race_terminal.core.services.command_dispatcher import CommandDispatcher
from race_terminal.core.services.output_formatter import OutputFormatter
from race_terminal.core.services.session_service import SessionStateService

from tests.unit.fakes import FakeProvider, FixedClock


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def registry() -> CommandRegistry:
    return CommandRegistry()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def session_service(
    store: InMemoryKeyValueStore, hub: BroadcastHub, clock: FixedClock
) -> SessionStateService:
    return SessionStateService(
        store, LocalChangeChannel(), hub.channel("tab-a"), clock=clock
    )


@pytest.fixture
def providers(registry: CommandRegistry) -> dict[ProviderKind, FakeProvider]:
    """One fake per provider kind, answering exactly the commands it serves."""
    result: dict[ProviderKind, FakeProvider] = {}
    for kind in (ProviderKind.REFERENCE, ProviderKind.LIVE, ProviderKind.RESULTS):
        commands = [d.name for d in registry.all() if d.provider is kind]
        result[kind] = FakeProvider(kind.value, commands)
    return result


@pytest.fixture
def history() -> HistoryStore:
    return HistoryStore()


@pytest.fixture
def dispatcher(
    registry: CommandRegistry,
    history: HistoryStore,
    session_service: SessionStateService,
    providers: dict[ProviderKind, FakeProvider],
    clock: FixedClock,
) -> CommandDispatcher:
    return CommandDispatcher(
        registry,
        CommandParser(registry),
        OutputFormatter(registry),
        history,
        session_service,
        providers,
        clock=clock,
        dispatch_timeout=0.5,
    )
