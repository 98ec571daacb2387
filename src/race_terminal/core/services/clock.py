"""
Wall clock, uptime formatting and the once-per-interval ticker.

The ticker runs beside the dispatcher and only reads the session start and
the clock; it never touches dispatcher, history or session state.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from race_terminal.constants import DEFAULT_CLOCK_TICK_SECONDS
from race_terminal.core.interfaces.model_bases import InternalDTO

if TYPE_CHECKING:
    from race_terminal.core.services.session_service import SessionStateService

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the system wall clock, always UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def format_uptime(delta: timedelta) -> str:
    """Render elapsed time as m:ss; minutes are not wrapped into hours."""
    total = max(int(delta.total_seconds()), 0)
    minutes, seconds = divmod(total, 60)
    return f"{minutes}:{seconds:02d}"


@dataclass(frozen=True)
class ClockTick(InternalDTO):
    now: datetime
    uptime: str


class ClockTicker:
    """Emits a ClockTick every `interval` seconds until stopped."""

    def __init__(
        self,
        session_service: SessionStateService,
        clock: Clock | None = None,
        interval: float = DEFAULT_CLOCK_TICK_SECONDS,
        on_tick: Callable[[ClockTick], None] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Tick interval must be positive.")
        self._session_service = session_service
        self._clock = clock or SystemClock()
        self._interval = interval
        self._on_tick = on_tick
        self._task: asyncio.Task[None] | None = None
        self.last_tick: ClockTick | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> ClockTick:
        """Compute and publish one tick."""
        now = self._clock.now()
        started = self._session_service.get().session_start
        tick = ClockTick(now=now, uptime=format_uptime(now - started))
        self.last_tick = tick
        if self._on_tick is not None:
            try:
                self._on_tick(tick)
            except Exception as e:
                logger.error("Clock tick callback failed: %s", e, exc_info=True)
        return tick

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="race-terminal-clock")
        logger.debug("Clock ticker started (interval=%.2fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("Clock ticker stopped")

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self._interval)
