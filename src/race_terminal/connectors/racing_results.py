"""
Detailed results connector: race classification, qualifying, sprint, lap
times, pit stops and fastest laps per round, served by the Ergast-compatible API.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from race_terminal.connectors.base import CommandHandler, HttpDataProvider
from race_terminal.connectors.ergast import (
    DEFAULT_ERGAST_BASE_URL,
    first_race,
    normalize_race,
    normalize_results,
    to_identifier,
)

logger = logging.getLogger(__name__)

LAPS_PAGE_LIMIT = 2000


class RaceResultsConnector(HttpDataProvider):
    """Per-round results data."""

    name = "racing-results"

    def __init__(self, base_url: str = DEFAULT_ERGAST_BASE_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    def _handlers(self) -> Mapping[str, CommandHandler]:
        return {
            "race": self.race,
            "qualifying": self.qualifying,
            "sprint": self.sprint,
            "laps": self.laps,
            "pitstops": self.pitstops,
            "fastest": self.fastest,
        }

    async def _race(self, path: str, what: str) -> dict[str, Any]:
        body = await self._get_json(path)
        return first_race(body, what, provider=self.name)

    async def race(self, args: Sequence[str]) -> dict[str, Any]:
        year = args[0]
        round_ = args[1] if len(args) > 1 else "last"
        race = await self._race(
            f"/{year}/{round_}/results.json", f"race data for {year} round {round_}"
        )
        payload = normalize_results(race)
        if not payload["results"]:
            raise self._not_found(f"No race data found for {year} round {round_}")
        return payload

    async def qualifying(self, args: Sequence[str]) -> dict[str, Any]:
        year, round_ = args[0], args[1]
        race = await self._race(
            f"/{year}/{round_}/qualifying.json",
            f"qualifying data for {year} round {round_}",
        )
        rows = []
        for result in race.get("QualifyingResults") or []:
            driver = result.get("Driver") or {}
            rows.append(
                {
                    "position": result.get("position", "?"),
                    "driver": f"{driver.get('givenName', '')} {driver.get('familyName', '')}".strip(),
                    "team": (result.get("Constructor") or {}).get("name", ""),
                    "q1": result.get("Q1") or "N/A",
                    "q2": result.get("Q2") or "N/A",
                    "q3": result.get("Q3") or "N/A",
                }
            )
        if not rows:
            raise self._not_found(f"No qualifying data found for {year} round {round_}")
        return {"race": normalize_race(race), "results": rows}

    async def sprint(self, args: Sequence[str]) -> dict[str, Any]:
        year, round_ = args[0], args[1]
        race = await self._race(
            f"/{year}/{round_}/sprint.json", f"sprint data for {year} round {round_}"
        )
        payload = normalize_results(race, key="SprintResults")
        if not payload["results"]:
            raise self._not_found(f"No sprint data found for {year} round {round_}")
        return payload

    async def laps(self, args: Sequence[str]) -> dict[str, Any]:
        year, round_ = args[0], args[1]
        driver = to_identifier(args[2]) if len(args) > 2 else None
        path = f"/{year}/{round_}/laps.json"
        if driver:
            path = f"/{year}/{round_}/drivers/{driver}/laps.json"

        body = await self._get_json(path, params={"limit": LAPS_PAGE_LIMIT})
        race = first_race(body, f"lap data for {year} round {round_}", provider=self.name)
        rows = []
        for lap in race.get("Laps") or []:
            for timing in lap.get("Timings") or []:
                rows.append(
                    {
                        "lap": int(lap.get("number", 0)),
                        "driver": str(timing.get("driverId", "")).upper(),
                        "position": timing.get("position", ""),
                        "time": timing.get("time", ""),
                    }
                )
        if not rows:
            raise self._not_found(f"No lap data found for {year} round {round_}")
        rows.sort(key=lambda row: (row["lap"], row["time"]))
        return {"race": normalize_race(race), "driver": driver, "laps": rows}

    async def pitstops(self, args: Sequence[str]) -> dict[str, Any]:
        year, round_ = args[0], args[1]
        body = await self._get_json(
            f"/{year}/{round_}/pitstops.json", params={"limit": LAPS_PAGE_LIMIT}
        )
        race = first_race(body, f"pit stop data for {year} round {round_}", provider=self.name)
        rows = [
            {
                "driver": str(stop.get("driverId", "")).upper(),
                "stop": stop.get("stop", ""),
                "lap": stop.get("lap", ""),
                "duration": stop.get("duration", ""),
            }
            for stop in race.get("PitStops") or []
        ]
        if not rows:
            raise self._not_found(f"No pit stop data found for {year} round {round_}")
        return {"race": normalize_race(race), "stops": rows}

    async def fastest(self, args: Sequence[str]) -> dict[str, Any]:
        year, round_ = args[0], args[1]
        race = await self._race(
            f"/{year}/{round_}/fastest/1/results.json",
            f"fastest lap data for {year} round {round_}",
        )
        results = race.get("Results") or []
        if not results:
            raise self._not_found(f"No fastest lap data found for {year} round {round_}")
        result = results[0]
        driver = result.get("Driver") or {}
        fastest = result.get("FastestLap") or {}
        return {
            "race": normalize_race(race),
            "driver": f"{driver.get('givenName', '')} {driver.get('familyName', '')}".strip(),
            "team": (result.get("Constructor") or {}).get("name", ""),
            "lap": fastest.get("lap", ""),
            "time": (fastest.get("Time") or {}).get("time", ""),
            "average_speed": (fastest.get("AverageSpeed") or {}).get("speed", ""),
        }
