"""
Command descriptor domain model.

A CommandDescriptor is one immutable row of the command registry: the
command name, its positional argument slots, and the collaborator that
serves it. An Invocation is one parsed and validated submission of a
descriptor, carrying the canonical text of each argument and its typed value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import field_validator, model_validator

from race_terminal.constants import DEFAULT_COMMAND_PREFIX
from race_terminal.core.domain.base import ValueObject
from race_terminal.core.interfaces.model_bases import InternalDTO


class ArgKind(str, Enum):
    """Type of a positional argument slot."""

    STRING = "string"
    INTEGER = "integer"


class ProviderKind(str, Enum):
    """Collaborator responsible for answering a command."""

    SYSTEM = "system"
    REFERENCE = "reference"
    LIVE = "live"
    RESULTS = "results"


class CommandKind(str, Enum):
    """Closed set of commands the interpreter knows how to route."""

    HELP = "help"
    USER = "user"
    THEME = "theme"
    DRIVER = "driver"
    TEAM = "team"
    STANDINGS = "standings"
    TEAMS = "teams"
    SCHEDULE = "schedule"
    NEXT = "next"
    LAST = "last"
    TRACK = "track"
    LIVE = "live"
    WEATHER = "weather"
    RACE = "race"
    QUALIFYING = "qualifying"
    SPRINT = "sprint"
    LAPS = "laps"
    PITSTOPS = "pitstops"
    FASTEST = "fastest"
    COMPARE = "compare"
    LIST = "list"


class ArgSpec(ValueObject):
    """One positional argument slot of a command."""

    name: str
    kind: ArgKind = ArgKind.STRING
    required: bool = True
    minimum: int | None = None
    choices: tuple[str, ...] = ()

    @field_validator("choices")
    @classmethod
    def normalize_choices(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(choice.strip().lower() for choice in v)

    @property
    def placeholder(self) -> str:
        return f"<{self.name}>" if self.required else f"[{self.name}]"


class CommandDescriptor(ValueObject):
    """Immutable description of a registered command."""

    kind: CommandKind
    name: str
    description: str
    source_label: str
    provider: ProviderKind
    arg_spec: tuple[ArgSpec, ...] = ()
    aliases: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    # Alias tokens that also bind the leading argument, e.g. ("md", "driver")
    shortcuts: tuple[tuple[str, str], ...] = ()
    # When False, words beyond the last slot are rejected instead of joined into it
    joins_trailing_words: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        name = v.strip().lower()
        if not name or any(c.isspace() for c in name):
            raise ValueError("Command name must be a single non-empty token")
        return name

    @field_validator("aliases", "topics")
    @classmethod
    def normalize_tokens(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(token.strip().lower() for token in v)

    @field_validator("shortcuts")
    @classmethod
    def normalize_shortcuts(
        cls, v: tuple[tuple[str, str], ...]
    ) -> tuple[tuple[str, str], ...]:
        return tuple((token.strip().lower(), preset.strip().lower()) for token, preset in v)

    @model_validator(mode="after")
    def validate_arg_order(self) -> CommandDescriptor:
        seen_optional = False
        for spec in self.arg_spec:
            if spec.required and seen_optional:
                raise ValueError(
                    f"Required argument <{spec.name}> of '{self.name}' "
                    "follows an optional argument"
                )
            seen_optional = seen_optional or not spec.required
        if self.shortcuts and not self.arg_spec:
            raise ValueError(f"Shortcuts of '{self.name}' need an argument slot to bind")
        return self

    @property
    def required_count(self) -> int:
        return sum(1 for spec in self.arg_spec if spec.required)

    @property
    def all_aliases(self) -> tuple[str, ...]:
        """Plain aliases followed by shortcut tokens."""
        return self.aliases + tuple(token for token, _ in self.shortcuts)

    def usage(self, prefix: str = DEFAULT_COMMAND_PREFIX) -> str:
        """Return the usage line, e.g. ``/race <year> [round]``."""
        parts = [f"{prefix}{self.name}"]
        parts.extend(spec.placeholder for spec in self.arg_spec)
        return " ".join(parts)


@dataclass(frozen=True)
class Invocation(InternalDTO):
    """
    A parsed command ready for dispatch.

    Attributes:
        command: The resolved descriptor.
        args: Canonical text of each bound slot, as handed to providers.
        values: Typed value per argument slot; None for an omitted optional.
        raw: The stripped input line.
    """

    command: CommandDescriptor
    args: tuple[str, ...] = ()
    values: tuple[str | int | None, ...] = ()
    raw: str = ""

    @property
    def kind(self) -> CommandKind:
        return self.command.kind

    @property
    def name(self) -> str:
        return self.command.name

    def value(self, arg_name: str) -> str | int | None:
        """Return the typed value bound to the named argument slot."""
        for spec, value in zip(self.command.arg_spec, self.values):
            if spec.name == arg_name:
                return value
        raise KeyError(arg_name)
