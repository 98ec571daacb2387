import asyncio

import pytest
from race_terminal.constants import DEFAULT_ACTOR, ERROR_PREFIX
from race_terminal.core.commands.parser import CommandParser
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import ConfigurationError, ProviderError
from race_terminal.core.domain.command_descriptor import ProviderKind
from race_terminal.core.domain.command_results import ErrorKind
from race_terminal.core.repositories.history_store import HistoryStore
from race_terminal.core.repositories.key_value_store import JsonFileKeyValueStore
from race_terminal.core.services.change_channels import BroadcastHub, LocalChangeChannel
from race_terminal.core.services.command_dispatcher import (
    CommandDispatcher,
    DispatchState,
)
from race_terminal.core.services.output_formatter import OutputFormatter, is_error_output
from race_terminal.core.services.session_service import SessionStateService

from tests.unit.fakes import FailingStore, FakeProvider, FixedClock

HAMILTON = {
    "driver_id": "hamilton",
    "given_name": "Lewis",
    "family_name": "Hamilton",
    "code": "HAM",
    "number": "44",
    "nationality": "British",
    "date_of_birth": "1985-01-07",
    "url": "",
}


async def _wait_for_call(provider: FakeProvider) -> None:
    while not provider.calls:
        await asyncio.sleep(0)


def _build(
    registry: CommandRegistry,
    session: SessionStateService,
    providers: dict[ProviderKind, FakeProvider],
    history: HistoryStore | None = None,
    timeout: float = 1.0,
) -> CommandDispatcher:
    return CommandDispatcher(
        registry,
        CommandParser(registry),
        OutputFormatter(registry),
        history or HistoryStore(),
        session,
        providers,
        dispatch_timeout=timeout,
    )


@pytest.mark.asyncio
async def test_driver_command_calls_provider_once_and_records_success(
    dispatcher: CommandDispatcher,
    providers: dict[ProviderKind, FakeProvider],
    history: HistoryStore,
) -> None:
    reference = providers[ProviderKind.REFERENCE]
    reference.responses["driver"] = HAMILTON

    entry = await dispatcher.submit("/driver hamilton")

    assert reference.calls == [("driver", ["hamilton"])]
    assert entry is not None
    assert entry.success is True
    assert entry.error_kind is None
    assert entry.command == "/driver hamilton"
    assert "Lewis Hamilton" in entry.output
    assert not is_error_output(entry.output)
    assert history.all() == (entry,)
    assert dispatcher.state is DispatchState.IDLE


@pytest.mark.asyncio
async def test_entry_is_stamped_with_actor_and_clock(
    dispatcher: CommandDispatcher,
    session_service: SessionStateService,
    clock: FixedClock,
) -> None:
    session_service.set_actor("pilot7")

    entry = await dispatcher.submit("/standings")

    assert entry is not None
    assert entry.actor == "pilot7"
    assert entry.timestamp == clock.now().isoformat()


@pytest.mark.asyncio
async def test_processing_spans_the_provider_await(
    dispatcher: CommandDispatcher,
    providers: dict[ProviderKind, FakeProvider],
    session_service: SessionStateService,
    history: HistoryStore,
) -> None:
    reference = providers[ProviderKind.REFERENCE]
    reference.gate = asyncio.Event()
    assert session_service.get().processing is False

    task = asyncio.create_task(dispatcher.submit("/driver hamilton"))
    await _wait_for_call(reference)

    assert dispatcher.processing is True
    assert session_service.get().processing is True

    reference.gate.set()
    entry = await task

    assert entry is not None
    assert dispatcher.processing is False
    assert session_service.get().processing is False
    assert len(history) == 1


@pytest.mark.asyncio
async def test_submission_while_processing_is_ignored(
    dispatcher: CommandDispatcher,
    providers: dict[ProviderKind, FakeProvider],
    history: HistoryStore,
) -> None:
    reference = providers[ProviderKind.REFERENCE]
    reference.gate = asyncio.Event()
    task = asyncio.create_task(dispatcher.submit("/driver hamilton"))
    await _wait_for_call(reference)

    assert await dispatcher.submit("/standings") is None
    assert await dispatcher.submit("/unknown") is None
    assert len(history) == 0
    assert reference.calls == [("driver", ["hamilton"])]

    reference.gate.set()
    await task
    assert len(history) == 1


@pytest.mark.asyncio
async def test_blank_line_is_not_recorded(
    dispatcher: CommandDispatcher, history: HistoryStore
) -> None:
    assert await dispatcher.submit("   ") is None
    assert len(history) == 0


@pytest.mark.asyncio
async def test_optional_round_is_accepted(
    dispatcher: CommandDispatcher, providers: dict[ProviderKind, FakeProvider]
) -> None:
    results = providers[ProviderKind.RESULTS]
    results.responses["race"] = {"race": {"name": "Bahrain Grand Prix"}, "results": []}

    entry = await dispatcher.submit("/race 2023")

    assert results.calls == [("race", ["2023"])]
    assert entry is not None and entry.success


@pytest.mark.asyncio
async def test_providers_receive_canonical_arguments(
    dispatcher: CommandDispatcher, providers: dict[ProviderKind, FakeProvider]
) -> None:
    results = providers[ProviderKind.RESULTS]
    reference = providers[ProviderKind.REFERENCE]
    reference.responses["compare"] = {"type": "team", "entries": [{}, {}]}

    await dispatcher.submit("/qualifying 2023 05")
    await dispatcher.submit("/mt Ferrari McLaren")

    assert results.calls == [("qualifying", ["2023", "5"])]
    assert reference.calls == [("compare", ["team", "Ferrari", "McLaren"])]


@pytest.mark.asyncio
async def test_loosely_written_year_never_reaches_provider(
    dispatcher: CommandDispatcher, providers: dict[ProviderKind, FakeProvider]
) -> None:
    entry = await dispatcher.submit("/race 2_023")

    assert entry is not None
    assert entry.error_kind is ErrorKind.VALIDATION
    assert providers[ProviderKind.RESULTS].calls == []


@pytest.mark.asyncio
async def test_validation_failure_never_calls_provider(
    dispatcher: CommandDispatcher,
    providers: dict[ProviderKind, FakeProvider],
    history: HistoryStore,
) -> None:
    entry = await dispatcher.submit("/qualifying 2023")

    assert providers[ProviderKind.RESULTS].calls == []
    assert entry is not None
    assert entry.success is False
    assert entry.error_kind is ErrorKind.VALIDATION
    assert entry.output.startswith(ERROR_PREFIX)
    assert "Usage: /qualifying <year> <round>" in entry.output
    assert is_error_output(entry.output)
    assert len(history) == 1


@pytest.mark.asyncio
async def test_unknown_command_is_a_parse_failure(
    dispatcher: CommandDispatcher, providers: dict[ProviderKind, FakeProvider]
) -> None:
    entry = await dispatcher.submit("/unknown")

    assert entry is not None
    assert entry.error_kind is ErrorKind.PARSE
    assert is_error_output(entry.output)
    assert all(not p.calls for p in providers.values())
    assert dispatcher.state is DispatchState.IDLE


@pytest.mark.asyncio
async def test_not_found_provider_error_becomes_entry(
    dispatcher: CommandDispatcher, providers: dict[ProviderKind, FakeProvider]
) -> None:
    providers[ProviderKind.REFERENCE].responses["driver"] = ProviderError(
        'Driver "nobody" not found', provider="ergast", not_found=True
    )

    entry = await dispatcher.submit("/driver nobody")

    assert entry is not None
    assert entry.error_kind is ErrorKind.NOT_FOUND
    assert entry.output.startswith(ERROR_PREFIX)
    assert 'Driver "nobody" not found' in entry.output


@pytest.mark.asyncio
async def test_unexpected_provider_exception_does_not_escape(
    dispatcher: CommandDispatcher,
    providers: dict[ProviderKind, FakeProvider],
    history: HistoryStore,
) -> None:
    providers[ProviderKind.LIVE].responses["weather"] = RuntimeError("boom")

    entry = await dispatcher.submit("/weather")

    assert entry is not None
    assert entry.error_kind is ErrorKind.PROVIDER
    assert "boom" not in entry.output
    assert is_error_output(entry.output)
    assert len(history) == 1
    assert dispatcher.processing is False


@pytest.mark.asyncio
async def test_stalled_provider_is_cut_off_by_timeout(
    registry: CommandRegistry,
    session_service: SessionStateService,
    providers: dict[ProviderKind, FakeProvider],
) -> None:
    live = providers[ProviderKind.LIVE]
    live.gate = asyncio.Event()
    dispatcher = _build(registry, session_service, providers, timeout=0.05)

    entry = await dispatcher.submit("/live")

    assert entry is not None
    assert entry.error_kind is ErrorKind.TIMEOUT
    assert entry.output.startswith(ERROR_PREFIX)
    assert dispatcher.processing is False
    assert session_service.get().processing is False

    live.gate.set()
    follow_up = await dispatcher.submit("/live")
    assert follow_up is not None and follow_up.success


@pytest.mark.asyncio
async def test_zero_timeout_disables_the_bound(
    registry: CommandRegistry,
    session_service: SessionStateService,
    providers: dict[ProviderKind, FakeProvider],
) -> None:
    dispatcher = _build(registry, session_service, providers, timeout=0)
    assert dispatcher.dispatch_timeout is None
    entry = await dispatcher.submit("/schedule")
    assert entry is not None and entry.success


@pytest.mark.asyncio
async def test_every_dispatch_appends_exactly_one_entry(
    dispatcher: CommandDispatcher, history: HistoryStore
) -> None:
    lines = ["/help", "/unknown", "/race 1900", "/standings", "hello"]
    for expected, line in enumerate(lines, start=1):
        await dispatcher.submit(line)
        assert len(history) == expected
    assert [e.command for e in history.all()] == lines


@pytest.mark.asyncio
async def test_success_text_never_carries_error_markers(
    dispatcher: CommandDispatcher, providers: dict[ProviderKind, FakeProvider]
) -> None:
    providers[ProviderKind.REFERENCE].responses["team"] = {
        "name": "No Limits Racing",
        "nationality": "Error: not found",
        "championships": 0,
    }

    entry = await dispatcher.submit("/team nolimits")

    assert entry is not None and entry.success
    assert not is_error_output(entry.output)


@pytest.mark.asyncio
async def test_user_command_survives_failing_store(
    registry: CommandRegistry,
    providers: dict[ProviderKind, FakeProvider],
) -> None:
    session = SessionStateService(
        FailingStore(), LocalChangeChannel(), BroadcastHub().channel("tab"), clock=FixedClock()
    )
    dispatcher = _build(registry, session, providers)

    entry = await dispatcher.submit("/user pilot7")

    assert entry is not None
    assert entry.success is True
    assert session.get().actor == DEFAULT_ACTOR


@pytest.mark.asyncio
async def test_user_command_repairs_undecodable_store_file(
    tmp_path,
    registry: CommandRegistry,
    providers: dict[ProviderKind, FakeProvider],
) -> None:
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    session = SessionStateService(
        JsonFileKeyValueStore(path),
        LocalChangeChannel(),
        BroadcastHub().channel("tab"),
        clock=FixedClock(),
    )
    dispatcher = _build(registry, session, providers)

    entry = await dispatcher.submit("/user pilot7")

    assert entry is not None
    assert entry.success is True
    assert session.get().actor == "pilot7"


def test_missing_provider_fails_at_construction(
    registry: CommandRegistry,
    session_service: SessionStateService,
    providers: dict[ProviderKind, FakeProvider],
) -> None:
    del providers[ProviderKind.LIVE]
    with pytest.raises(ConfigurationError, match="no live provider for 'live'"):
        _build(registry, session_service, providers)


def test_provider_missing_a_command_fails_at_construction(
    registry: CommandRegistry,
    session_service: SessionStateService,
    providers: dict[ProviderKind, FakeProvider],
) -> None:
    reference = providers[ProviderKind.REFERENCE]
    providers[ProviderKind.REFERENCE] = FakeProvider(
        reference.name, sorted(reference.supported_commands - {"track"})
    )
    with pytest.raises(ConfigurationError, match="does not answer 'track'"):
        _build(registry, session_service, providers)
