"""
Session state service.

Owns one tab's SessionState snapshot. Actor and theme are persisted to the
shared key-value store and announced on two channels: the local channel for
listeners in the same tab, and the external channel for other tabs.
"""

from __future__ import annotations

import logging

from race_terminal.constants import (
    ACTOR_STORAGE_KEY,
    DEFAULT_ACTOR,
    THEME_STORAGE_KEY,
)
from race_terminal.core.common.exceptions import PersistenceError
from race_terminal.core.domain.session import ChangeNotification, SessionState
from race_terminal.core.domain.themes import ThemeCatalog
from race_terminal.core.interfaces.change_channel_interface import (
    ChangeListener,
    IChangeChannel,
    Unsubscribe,
)
from race_terminal.core.interfaces.key_value_store_interface import IKeyValueStore
from race_terminal.core.services.clock import Clock, SystemClock, format_uptime

logger = logging.getLogger(__name__)


class SessionStateService:
    """Explicit owner of a tab's session state and its persistence."""

    def __init__(
        self,
        store: IKeyValueStore,
        local_channel: IChangeChannel,
        external_channel: IChangeChannel,
        themes: ThemeCatalog | None = None,
        clock: Clock | None = None,
        default_actor: str = DEFAULT_ACTOR,
        actor_key: str = ACTOR_STORAGE_KEY,
        theme_key: str = THEME_STORAGE_KEY,
    ) -> None:
        """
        Load the persisted actor and theme and start listening for other tabs.

        Args:
            store: Persistent store shared by every tab
            local_channel: Same-tab notification channel
            external_channel: Cross-tab notification channel
            themes: Theme catalog used to validate theme ids
            clock: Time source for the session start and uptime
            default_actor: Label used when no valid actor is available
            actor_key: Store key holding the actor
            theme_key: Store key holding the theme id
        """
        if not default_actor.strip():
            raise ValueError("Default actor must not be empty.")
        self._store = store
        self._local = local_channel
        self._external = external_channel
        self._themes = themes or ThemeCatalog()
        self._clock = clock or SystemClock()
        self._default_actor = default_actor
        self._actor_key = actor_key
        self._theme_key = theme_key

        self._state = SessionState(
            actor=self._normalize_actor(self._read(actor_key)),
            theme=self._themes.resolve(self._read(theme_key)),
            session_start=self._clock.now(),
        )
        self._unsubscribe_external = self._external.subscribe(self._on_external_change)
        logger.debug(
            "Session state loaded: actor=%s theme=%s", self._state.actor, self._state.theme
        )

    @property
    def themes(self) -> ThemeCatalog:
        return self._themes

    @property
    def default_actor(self) -> str:
        return self._default_actor

    def get(self) -> SessionState:
        return self._state

    def set_actor(self, name: str | None) -> SessionState:
        """Persist and announce a new actor; blank input means the default."""
        actor = self._normalize_actor(name)
        if not self._write(self._actor_key, actor):
            actor = self._default_actor
        self._state = self._state.with_actor(actor)
        self._announce(self._actor_key, actor)
        return self._state

    def set_theme(self, theme_id: str | None) -> SessionState:
        """Persist and announce a new theme; unknown ids mean the default."""
        theme = self._themes.resolve(theme_id)
        if not self._write(self._theme_key, theme):
            theme = self._themes.default_id
        self._state = self._state.with_theme(theme)
        self._announce(self._theme_key, theme)
        return self._state

    def mark_processing(self, processing: bool) -> SessionState:
        self._state = self._state.with_processing(processing)
        return self._state

    def uptime(self) -> str:
        return format_uptime(self._clock.now() - self._state.session_start)

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        """Listen for actor/theme changes from this tab or any other."""
        return self._local.subscribe(listener)

    def close(self) -> None:
        self._unsubscribe_external()
        close = getattr(self._external, "close", None)
        if callable(close):
            close()

    def _normalize_actor(self, name: str | None) -> str:
        actor = (name or "").strip()
        return actor or self._default_actor

    def _read(self, key: str) -> str | None:
        try:
            return self._store.get(key)
        except PersistenceError as e:
            logger.warning("Could not read '%s' from store, using default: %s", key, e)
            return None

    def _write(self, key: str, value: str) -> bool:
        try:
            self._store.set(key, value)
        except PersistenceError as e:
            logger.warning("Could not persist '%s', falling back to default: %s", key, e)
            return False
        return True

    def _announce(self, key: str, value: str) -> None:
        notification = ChangeNotification(key=key, value=value)
        self._local.publish(notification)
        self._external.publish(notification)

    def _on_external_change(self, notification: ChangeNotification) -> None:
        if notification.key == self._actor_key:
            self._state = self._state.with_actor(self._normalize_actor(notification.value))
            value = self._state.actor
        elif notification.key == self._theme_key:
            self._state = self._state.with_theme(self._themes.resolve(notification.value))
            value = self._state.theme
        else:
            logger.debug("Ignoring change for untracked key '%s'", notification.key)
            return

        logger.debug(
            "Applied change of '%s' from origin '%s'", notification.key, notification.origin
        )
        self._local.publish(notification.model_copy(update={"value": value}))
