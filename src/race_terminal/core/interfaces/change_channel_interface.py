from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from race_terminal.core.domain.session import ChangeNotification

ChangeListener = Callable[[ChangeNotification], None]
Unsubscribe = Callable[[], None]


class IChangeChannel(ABC):
    """Publish/subscribe channel for session key changes."""

    @abstractmethod
    def publish(self, notification: ChangeNotification) -> None:
        """Deliver a notification to the channel's subscribers."""

    @abstractmethod
    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        """Register a listener and return a callable that removes it."""
