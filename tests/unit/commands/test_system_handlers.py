import pytest
from race_terminal.constants import ACTOR_STORAGE_KEY, DEFAULT_ACTOR, THEME_STORAGE_KEY
from race_terminal.core.commands.handlers.system_handlers import SystemCommandHandlers
from race_terminal.core.commands.parser import CommandParser
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import ProviderError, ValidationError
from race_terminal.core.repositories.key_value_store import InMemoryKeyValueStore
from race_terminal.core.services.session_service import SessionStateService


@pytest.fixture
def handlers(
    registry: CommandRegistry, session_service: SessionStateService
) -> SystemCommandHandlers:
    return SystemCommandHandlers(registry, session_service)


@pytest.fixture
def parser(registry: CommandRegistry) -> CommandParser:
    return CommandParser(registry)


@pytest.mark.asyncio
async def test_help_lists_every_command_grouped_by_topic(
    handlers: SystemCommandHandlers, parser: CommandParser, registry: CommandRegistry
) -> None:
    payload = await handlers.help(parser.parse("/help"))

    assert payload["topic"] is None
    titles = [section["title"] for section in payload["sections"]]
    assert titles == ["SYSTEM", "DRIVERS & TEAMS", "RACE INFORMATION", "LIVE DATA", "HISTORICAL DATA"]
    listed = [c["usage"] for s in payload["sections"] for c in s["commands"]]
    assert len(listed) == len(registry)
    assert "/race <year> [round]" in listed


@pytest.mark.asyncio
async def test_help_topic_filters_commands(
    handlers: SystemCommandHandlers, parser: CommandParser
) -> None:
    payload = await handlers.help(parser.parse("/help live"))

    usages = [c["usage"] for s in payload["sections"] for c in s["commands"]]
    assert usages == ["/live", "/weather"]


@pytest.mark.asyncio
async def test_help_topic_matches_command_names(
    handlers: SystemCommandHandlers, parser: CommandParser
) -> None:
    payload = await handlers.help(parser.parse("/help /pit"))

    usages = [c["usage"] for s in payload["sections"] for c in s["commands"]]
    assert usages == ["/pitstops <year> <round>"]


@pytest.mark.asyncio
async def test_help_lists_shortcuts_with_aliases(
    handlers: SystemCommandHandlers, parser: CommandParser
) -> None:
    payload = await handlers.help(parser.parse("/help compare"))

    (command,) = [c for s in payload["sections"] for c in s["commands"]]
    assert command["usage"] == "/compare <type> <first> <second>"
    assert command["aliases"] == ["/m", "/md", "/mt"]


@pytest.mark.asyncio
async def test_help_without_matches_is_not_found(
    handlers: SystemCommandHandlers, parser: CommandParser
) -> None:
    with pytest.raises(ProviderError) as exc_info:
        await handlers.help(parser.parse("/help zzzz"))
    assert exc_info.value.not_found


@pytest.mark.asyncio
async def test_user_sets_and_persists_actor(
    handlers: SystemCommandHandlers,
    parser: CommandParser,
    session_service: SessionStateService,
    store: InMemoryKeyValueStore,
) -> None:
    payload = await handlers.user(parser.parse("/user pilot7"))

    assert payload == {"actor": "pilot7", "reset": False}
    assert session_service.get().actor == "pilot7"
    assert store.get(ACTOR_STORAGE_KEY) == "pilot7"


@pytest.mark.asyncio
async def test_user_reset_restores_default(
    handlers: SystemCommandHandlers,
    parser: CommandParser,
    session_service: SessionStateService,
) -> None:
    session_service.set_actor("pilot7")

    payload = await handlers.user(parser.parse("/user RESET"))

    assert payload == {"actor": DEFAULT_ACTOR, "reset": True}
    assert session_service.get().actor == DEFAULT_ACTOR


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["x", "a" * 21, "bad!name"])
async def test_user_rejects_invalid_names(
    handlers: SystemCommandHandlers,
    parser: CommandParser,
    session_service: SessionStateService,
    name: str,
) -> None:
    with pytest.raises(ValidationError, match="username must be 2-20 characters"):
        await handlers.user(parser.parse(f"/user {name}"))
    assert session_service.get().actor == DEFAULT_ACTOR


@pytest.mark.asyncio
async def test_theme_without_argument_lists_themes(
    handlers: SystemCommandHandlers, parser: CommandParser
) -> None:
    payload = await handlers.theme(parser.parse("/theme"))

    assert payload["current"] == "default"
    assert "dracula" in payload["themes"]["color"]
    assert "ferrari" in payload["themes"]["team"]
    assert payload["usage"] == "/theme [theme]"


@pytest.mark.asyncio
async def test_theme_switch_is_persisted(
    handlers: SystemCommandHandlers,
    parser: CommandParser,
    store: InMemoryKeyValueStore,
) -> None:
    payload = await handlers.theme(parser.parse("/theme Dracula"))

    assert payload == {"theme": "dracula"}
    assert store.get(THEME_STORAGE_KEY) == "dracula"


@pytest.mark.asyncio
async def test_unknown_theme_is_rejected(
    handlers: SystemCommandHandlers,
    parser: CommandParser,
    session_service: SessionStateService,
) -> None:
    with pytest.raises(ValidationError, match="not found"):
        await handlers.theme(parser.parse("/theme neon"))
    assert session_service.get().theme == "default"
