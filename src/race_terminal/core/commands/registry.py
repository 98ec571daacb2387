"""
Registry for command descriptors.

The registry is built once from the static command table and is read-only
afterwards. Lookups are case-insensitive and honour aliases.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from race_terminal.constants import DEFAULT_COMMAND_PREFIX
from race_terminal.core.commands.catalog import COMMAND_DESCRIPTORS
from race_terminal.core.domain.command_descriptor import CommandDescriptor, CommandKind

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Read-only table of command descriptors."""

    def __init__(
        self,
        descriptors: Iterable[CommandDescriptor] = COMMAND_DESCRIPTORS,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
    ) -> None:
        """
        Build the registry.

        Args:
            descriptors: Command descriptors in declaration order
            command_prefix: Prefix used when rendering usage lines

        Raises:
            ValueError: If a name or alias is registered twice
        """
        self._prefix = command_prefix
        self._ordered: tuple[CommandDescriptor, ...] = tuple(descriptors)
        self._by_token: dict[str, CommandDescriptor] = {}
        self._by_kind: dict[CommandKind, CommandDescriptor] = {}
        self._presets: dict[str, tuple[str, ...]] = {}

        for descriptor in self._ordered:
            if descriptor.kind in self._by_kind:
                raise ValueError(f"Command kind '{descriptor.kind.value}' is already registered.")
            self._by_kind[descriptor.kind] = descriptor
            for token in (descriptor.name, *descriptor.all_aliases):
                if token in self._by_token:
                    raise ValueError(f"Command '{token}' is already registered.")
                self._by_token[token] = descriptor
            for token, preset in descriptor.shortcuts:
                self._presets[token] = (preset,)

        logger.debug("Registered %d commands", len(self._ordered))

    @property
    def command_prefix(self) -> str:
        return self._prefix

    def lookup(self, name: str) -> CommandDescriptor | None:
        """
        Get a descriptor by name or alias.

        Args:
            name: Command token, with or without the command prefix

        Returns:
            The descriptor, or None if no command matches exactly
        """
        token = name.strip().lower()
        if token.startswith(self._prefix):
            token = token[len(self._prefix) :]
        return self._by_token.get(token)

    def resolve(self, token: str) -> tuple[CommandDescriptor, tuple[str, ...]] | None:
        """
        Resolve a bare command token, already stripped of its prefix.

        Unlike `lookup`, the token must equal a name, alias or shortcut; a
        second prefix is not removed.

        Returns:
            The descriptor and the argument tokens a shortcut binds ahead of
            the typed ones, or None if nothing matches
        """
        token = token.lower()
        descriptor = self._by_token.get(token)
        if descriptor is None:
            return None
        return descriptor, self._presets.get(token, ())

    def get_by_kind(self, kind: CommandKind) -> CommandDescriptor | None:
        return self._by_kind.get(kind)

    def all(self) -> tuple[CommandDescriptor, ...]:
        """Return every descriptor in declaration order."""
        return self._ordered

    def kinds(self) -> frozenset[CommandKind]:
        return frozenset(self._by_kind)

    def usage(self, descriptor: CommandDescriptor) -> str:
        return descriptor.usage(self._prefix)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None
