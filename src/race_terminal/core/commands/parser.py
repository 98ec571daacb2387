"""
Parses raw terminal input into command invocations.
"""

from __future__ import annotations

import logging

from race_terminal.constants import DEFAULT_COMMAND_PREFIX, PlainTextPolicy
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import ParseError, ValidationError
from race_terminal.core.domain.command_descriptor import (
    ArgKind,
    ArgSpec,
    CommandDescriptor,
    CommandKind,
    Invocation,
)

logger = logging.getLogger(__name__)


class CommandParser:
    """Tokenizes an input line and validates it against the registry."""

    def __init__(
        self,
        registry: CommandRegistry,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
        plain_text_policy: PlainTextPolicy = PlainTextPolicy.HELP,
    ) -> None:
        if not command_prefix or any(c.isspace() for c in command_prefix):
            raise ValueError("Command prefix must be a non-empty string without whitespace.")
        self._registry = registry
        self._prefix = command_prefix
        self._plain_text_policy = plain_text_policy

    @property
    def command_prefix(self) -> str:
        return self._prefix

    @property
    def plain_text_policy(self) -> PlainTextPolicy:
        return self._plain_text_policy

    def is_command(self, line: str) -> bool:
        return line.strip().startswith(self._prefix)

    def parse(self, line: str) -> Invocation:
        """
        Parse one input line.

        Args:
            line: Raw text as typed by the user

        Returns:
            A validated Invocation

        Raises:
            ParseError: If the line is empty, lacks the prefix under the REJECT
                policy, or names no registered command
            ValidationError: If the arguments do not fit the command's slots
        """
        text = line.strip()
        if not text:
            raise ParseError("empty input")

        if not text.startswith(self._prefix):
            return self._parse_plain_text(text)

        tokens = text[len(self._prefix) :].split()
        if not tokens:
            raise ParseError("unknown command", details={"command": text})

        name = tokens[0].lower()
        resolved = self._registry.resolve(name)
        if resolved is None:
            raise ParseError(
                f"Unknown command: {self._prefix}{name}",
                details={"command": f"{self._prefix}{name}"},
            )
        descriptor, preset = resolved

        args, values = self._bind_arguments(descriptor, [*preset, *tokens[1:]])
        return Invocation(command=descriptor, args=args, values=values, raw=text)

    def _parse_plain_text(self, text: str) -> Invocation:
        if self._plain_text_policy is PlainTextPolicy.REJECT:
            raise ParseError(
                f"Commands must start with '{self._prefix}'",
                details={"input": text},
            )

        descriptor = self._registry.get_by_kind(CommandKind.HELP)
        if descriptor is None:
            raise ParseError("unknown command", details={"input": text})
        logger.debug("Treating plain text as a help search: %r", text)
        topic = " ".join(text.split())
        return Invocation(command=descriptor, args=(topic,), values=(topic,), raw=text)

    def _bind_arguments(
        self, descriptor: CommandDescriptor, tokens: list[str]
    ) -> tuple[tuple[str, ...], tuple[str | int | None, ...]]:
        specs = descriptor.arg_spec
        tokens = list(tokens)

        if len(tokens) > len(specs):
            if (
                specs
                and specs[-1].kind is ArgKind.STRING
                and not specs[-1].choices
                and descriptor.joins_trailing_words
            ):
                # The trailing string slot absorbs the rest of the line
                tail = " ".join(tokens[len(specs) - 1 :])
                tokens = tokens[: len(specs) - 1] + [tail]
            else:
                extra = tokens[len(specs)]
                raise ValidationError(
                    f"unexpected argument '{extra}'",
                    details={"command": descriptor.name, "argument": extra},
                )

        args: list[str] = []
        values: list[str | int | None] = []
        for index, spec in enumerate(specs):
            if index >= len(tokens):
                if spec.required:
                    raise ValidationError(
                        f"missing argument <{spec.name}>",
                        details={"command": descriptor.name, "argument": spec.name},
                    )
                values.append(None)
                continue
            value = self._convert(descriptor, spec, tokens[index])
            args.append(str(value))
            values.append(value)

        return tuple(args), tuple(values)

    @staticmethod
    def _convert(descriptor: CommandDescriptor, spec: ArgSpec, token: str) -> str | int:
        if spec.kind is ArgKind.STRING:
            if not spec.choices:
                return token
            choice = token.lower()
            if choice not in spec.choices:
                raise ValidationError(
                    f"argument <{spec.name}> must be one of {', '.join(spec.choices)}, "
                    f"got '{token}'",
                    details={"command": descriptor.name, "argument": spec.name},
                )
            return choice

        # int() alone would also take "+5", "2_023" and non-ASCII digits
        if not (token.isascii() and token.isdigit()):
            raise ValidationError(
                f"argument <{spec.name}> must be an integer, got '{token}'",
                details={"command": descriptor.name, "argument": spec.name},
            )
        value = int(token)

        if spec.minimum is not None and value < spec.minimum:
            raise ValidationError(
                f"argument <{spec.name}> must be at least {spec.minimum}, got {value}",
                details={"command": descriptor.name, "argument": spec.name},
            )
        return value
