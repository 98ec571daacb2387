from __future__ import annotations

from collections.abc import Mapping

from race_terminal.core.commands.catalog import TOPIC_TITLES
from race_terminal.core.commands.registry import CommandRegistry
from race_terminal.core.domain.command_descriptor import CommandDescriptor


class AutocompleteIndex:
    """
    Completion candidates for a partially typed command.

    Name matches come first, then commands whose topic keyword matches.
    Both groups keep registry declaration order. The index only reads the
    registry; it is never consulted during dispatch.
    """

    def __init__(
        self, registry: CommandRegistry, topics: Mapping[str, str] | None = None
    ) -> None:
        self._registry = registry
        self._topics = dict(TOPIC_TITLES if topics is None else topics)

    def _matches(self, partial: str) -> list[CommandDescriptor]:
        token = partial.strip().lower()
        prefix = self._registry.command_prefix
        if token.startswith(prefix):
            token = token[len(prefix) :]
        descriptors = self._registry.all()
        if not token:
            return list(descriptors)

        by_name = [d for d in descriptors if d.name.startswith(token)]
        matched_topics = {
            topic
            for topic, title in self._topics.items()
            if topic.startswith(token) or title.lower().startswith(token)
        }
        by_topic = [
            d
            for d in descriptors
            if d not in by_name and matched_topics.intersection(d.topics)
        ]
        return by_name + by_topic

    def suggest(self, partial: str) -> list[str]:
        return [d.name for d in self._matches(partial)]

    def describe(self, partial: str) -> list[tuple[str, str]]:
        """Return (usage, description) pairs for the help panel."""
        return [
            (self._registry.usage(d), d.description) for d in self._matches(partial)
        ]
