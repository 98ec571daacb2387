"""
Publish/subscribe transports for session key changes.

LocalChangeChannel delivers to listeners of the same tab. BroadcastHub
connects many tabs: a notification published on one origin's channel is
delivered to every other origin on the hub, never back to the sender.
"""

from __future__ import annotations

import logging

from race_terminal.core.domain.session import ChangeNotification
from race_terminal.core.interfaces.change_channel_interface import (
    ChangeListener,
    IChangeChannel,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


def _deliver(listeners: list[ChangeListener], notification: ChangeNotification) -> None:
    for listener in list(listeners):
        try:
            listener(notification)
        except Exception as e:
            logger.error(
                "Change listener %r failed for key '%s': %s",
                listener,
                notification.key,
                e,
                exc_info=True,
            )


class LocalChangeChannel(IChangeChannel):
    """In-process channel; every subscriber sees every notification."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def publish(self, notification: ChangeNotification) -> None:
        _deliver(self._listeners, notification)

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class ExternalChangeChannel(IChangeChannel):
    """One origin's view of a BroadcastHub."""

    def __init__(self, hub: BroadcastHub, origin: str) -> None:
        self._hub = hub
        self.origin = origin
        self._listeners: list[ChangeListener] = []

    def publish(self, notification: ChangeNotification) -> None:
        stamped = notification.model_copy(update={"origin": self.origin})
        self._hub.broadcast(stamped)

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._listeners.clear()
        self._hub.detach(self)

    def _receive(self, notification: ChangeNotification) -> None:
        _deliver(self._listeners, notification)


class BroadcastHub:
    """Fan-out point shared by every tab of one process."""

    def __init__(self) -> None:
        self._channels: list[ExternalChangeChannel] = []

    def channel(self, origin: str) -> ExternalChangeChannel:
        """Attach a new origin to the hub and return its channel."""
        channel = ExternalChangeChannel(self, origin)
        self._channels.append(channel)
        logger.debug("Origin '%s' attached to broadcast hub", origin)
        return channel

    def detach(self, channel: ExternalChangeChannel) -> None:
        if channel in self._channels:
            self._channels.remove(channel)
            logger.debug("Origin '%s' detached from broadcast hub", channel.origin)

    def broadcast(self, notification: ChangeNotification) -> None:
        for channel in list(self._channels):
            if channel.origin == notification.origin:
                continue
            channel._receive(notification)

    @property
    def origins(self) -> list[str]:
        return [channel.origin for channel in self._channels]
