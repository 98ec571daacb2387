"""
In-process handlers for the system commands: help, user and theme.

They return payload dicts like the data providers do, so their output goes
through the same renderers and marker scrubbing as every other command.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from race_terminal.constants import (
    ACTOR_MAX_LENGTH,
    ACTOR_MIN_LENGTH,
    ACTOR_RESET_KEYWORD,
)
from race_terminal.core.commands.catalog import TOPIC_TITLES
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.common.exceptions import ProviderError, ValidationError
from race_terminal.core.domain.command_descriptor import (
    CommandDescriptor,
    CommandKind,
    Invocation,
)
from race_terminal.core.services.session_service import SessionStateService

logger = logging.getLogger(__name__)

ACTOR_PATTERN = re.compile(
    rf"^[A-Za-z0-9_-]{{{ACTOR_MIN_LENGTH},{ACTOR_MAX_LENGTH}}}$"
)

SystemHandler = Callable[[Invocation], Awaitable[dict[str, Any]]]


class SystemCommandHandlers:
    """Handlers for commands answered without a remote provider."""

    def __init__(self, registry: CommandRegistry, session: SessionStateService) -> None:
        self._registry = registry
        self._session = session

    def routes(self) -> dict[CommandKind, SystemHandler]:
        return {
            CommandKind.HELP: self.help,
            CommandKind.USER: self.user,
            CommandKind.THEME: self.theme,
        }

    async def help(self, invocation: Invocation) -> dict[str, Any]:
        topic = invocation.value("topic")
        if topic is None:
            return {"topic": None, "sections": self._sections(self._registry.all())}

        needle = str(topic).strip().lower()
        prefix = self._registry.command_prefix
        if needle.startswith(prefix):
            needle = needle[len(prefix) :]

        matches = self._search(needle)
        if not matches:
            raise ProviderError(
                f"No commands found for '{topic}'", provider="system", not_found=True
            )
        return {"topic": str(topic), "sections": self._sections(matches)}

    async def user(self, invocation: Invocation) -> dict[str, Any]:
        name = str(invocation.value("name")).strip()
        if name.lower() == ACTOR_RESET_KEYWORD:
            state = self._session.set_actor(None)
            logger.info("Username reset to default '%s'", state.actor)
            return {"actor": state.actor, "reset": True}

        if not ACTOR_PATTERN.match(name):
            raise ValidationError(
                f"username must be {ACTOR_MIN_LENGTH}-{ACTOR_MAX_LENGTH} characters "
                "of letters, digits, '_' or '-'",
                details={"command": invocation.name, "argument": "name"},
            )
        state = self._session.set_actor(name)
        return {"actor": state.actor, "reset": False}

    async def theme(self, invocation: Invocation) -> dict[str, Any]:
        requested = invocation.value("theme")
        themes = self._session.themes
        if requested is None:
            return {
                "current": self._session.get().theme,
                "themes": {
                    "color": themes.ids_in_group("color"),
                    "team": themes.ids_in_group("team"),
                },
                "usage": self._registry.usage(invocation.command),
            }

        theme_id = str(requested).strip().lower()
        if theme_id not in themes:
            raise ValidationError(
                f'theme "{requested}" not found',
                details={"command": invocation.name, "argument": "theme"},
            )
        state = self._session.set_theme(theme_id)
        return {"theme": state.theme}

    def _search(self, needle: str) -> list[CommandDescriptor]:
        by_topic = [d for d in self._registry.all() if needle in d.topics]
        if by_topic:
            return by_topic
        return [
            d
            for d in self._registry.all()
            if d.name.startswith(needle)
            or needle in d.all_aliases
            or needle in d.description.lower()
        ]

    def _sections(
        self, descriptors: Sequence[CommandDescriptor]
    ) -> list[dict[str, Any]]:
        grouped: dict[str, list[dict[str, Any]]] = {}
        for descriptor in descriptors:
            topic = descriptor.topics[0] if descriptor.topics else "system"
            grouped.setdefault(topic, []).append(
                {
                    "usage": self._registry.usage(descriptor),
                    "description": descriptor.description,
                    "aliases": [
                        f"{self._registry.command_prefix}{alias}"
                        for alias in descriptor.all_aliases
                    ],
                }
            )
        order = list(TOPIC_TITLES) + [t for t in grouped if t not in TOPIC_TITLES]
        return [
            {"title": TOPIC_TITLES.get(topic, topic.upper()), "commands": grouped[topic]}
            for topic in order
            if topic in grouped
        ]
