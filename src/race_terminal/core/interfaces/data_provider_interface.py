from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class IDataProvider(ABC):
    """An asynchronous upstream data source answering terminal commands."""

    name: str

    @property
    @abstractmethod
    def supported_commands(self) -> frozenset[str]:
        """Command names this provider can answer."""

    @abstractmethod
    async def fetch(self, command_name: str, args: Sequence[str]) -> dict[str, Any]:
        """
        Fetch structured data for one command.

        Args:
            command_name: Registered command name, e.g. "driver"
            args: Raw positional arguments, e.g. ["hamilton"]

        Returns:
            A normalized payload for the command's renderer

        Raises:
            ProviderError: If the upstream fails or has no data
        """

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
