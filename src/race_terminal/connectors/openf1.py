from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from race_terminal.connectors.base import CommandHandler, HttpDataProvider

logger = logging.getLogger(__name__)

DEFAULT_OPENF1_BASE_URL = "https://api.openf1.org/v1"
LATEST_SESSION = "latest"


class LiveTimingConnector(HttpDataProvider):
    """Live timing data from OpenF1 for the latest session."""

    name = "openf1"

    def __init__(self, base_url: str = DEFAULT_OPENF1_BASE_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    def _handlers(self) -> Mapping[str, CommandHandler]:
        return {"live": self.live, "weather": self.weather}

    async def _rows(self, path: str) -> list[dict[str, Any]]:
        body = await self._get_json(path, params={"session_key": LATEST_SESSION})
        if not isinstance(body, list):
            return []
        return [row for row in body if isinstance(row, dict)]

    async def live(self, args: Sequence[str]) -> dict[str, Any]:
        sessions = await self._rows("/sessions")
        if not sessions:
            raise self._not_found("Live timing data is only available during active sessions")
        session = sessions[-1]

        # Position samples arrive oldest first; keep the latest per car
        latest: dict[int, dict[str, Any]] = {}
        for sample in await self._rows("/position"):
            number = sample.get("driver_number")
            if number is not None:
                latest[number] = sample
        if not latest:
            raise self._not_found("Live timing data is only available during active sessions")

        drivers = {row.get("driver_number"): row for row in await self._rows("/drivers")}
        positions = []
        for number, sample in latest.items():
            driver = drivers.get(number, {})
            positions.append(
                {
                    "position": sample.get("position"),
                    "driver_number": number,
                    "name": driver.get("full_name") or driver.get("name_acronym") or f"Car #{number}",
                    "team": driver.get("team_name") or "",
                }
            )
        positions.sort(key=lambda row: (row["position"] is None, row["position"] or 0))

        return {
            "session": {
                "name": session.get("session_name", ""),
                "circuit": session.get("circuit_short_name", ""),
                "country": session.get("country_name", ""),
                "year": session.get("year", ""),
            },
            "positions": positions,
        }

    async def weather(self, args: Sequence[str]) -> dict[str, Any]:
        samples = await self._rows("/weather")
        if not samples:
            raise self._not_found(
                "Weather information is only available during race weekends"
            )
        sample = samples[-1]
        return {
            "air_temperature": sample.get("air_temperature"),
            "track_temperature": sample.get("track_temperature"),
            "humidity": sample.get("humidity"),
            "pressure": sample.get("pressure"),
            "wind_speed": sample.get("wind_speed"),
            "wind_direction": sample.get("wind_direction"),
            "rainfall": bool(sample.get("rainfall")),
            "date": sample.get("date", ""),
        }
