from __future__ import annotations

from datetime import datetime, timezone

from pydantic import ConfigDict, Field

from race_terminal.constants import DEFAULT_ACTOR, DEFAULT_THEME
from race_terminal.core.domain.base import ValueObject


class SessionState(ValueObject):
    """Immutable snapshot of one tab's session."""

    model_config = ConfigDict(frozen=True)

    actor: str = DEFAULT_ACTOR
    theme: str = DEFAULT_THEME
    session_start: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processing: bool = False

    def with_actor(self, actor: str) -> SessionState:
        """Create a new session state with updated actor."""
        return self.model_copy(update={"actor": actor})

    def with_theme(self, theme: str) -> SessionState:
        """Create a new session state with updated theme."""
        return self.model_copy(update={"theme": theme})

    def with_processing(self, processing: bool) -> SessionState:
        """Create a new session state with updated processing flag."""
        return self.model_copy(update={"processing": processing})


class ChangeNotification(ValueObject):
    """A whole-value change to one persisted session key."""

    key: str
    value: str | None = None
    origin: str = ""
