"""
Reference data connector for the Ergast-compatible API.

Answers driver, team, standings, teams, schedule, next, last, track,
compare and list.
The module also holds the Ergast payload normalizers shared with the
results connector.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from race_terminal.connectors.base import CommandHandler, HttpDataProvider
from race_terminal.core.common.exceptions import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_ERGAST_BASE_URL = "https://api.jolpi.ca/ergast/f1"


def mr_table(body: Any, table: str) -> dict[str, Any]:
    """Return MRData[table], or an empty dict when the envelope is missing."""
    if not isinstance(body, dict):
        raise ProviderError("Ergast returned an unexpected payload", provider="ergast")
    data = body.get("MRData") or {}
    return data.get(table) or {}


def mr_total(body: Any) -> int:
    try:
        return int((body.get("MRData") or {}).get("total", 0))
    except (AttributeError, TypeError, ValueError):
        return 0


def to_identifier(name: str) -> str:
    """Turn free text into an Ergast id: 'Max Verstappen' -> 'max_verstappen'."""
    return "_".join(name.lower().split())


def normalize_driver(driver: dict[str, Any]) -> dict[str, Any]:
    return {
        "driver_id": driver.get("driverId", ""),
        "given_name": driver.get("givenName", ""),
        "family_name": driver.get("familyName", ""),
        "code": driver.get("code") or "N/A",
        "number": driver.get("permanentNumber") or "N/A",
        "nationality": driver.get("nationality") or "Unknown",
        "date_of_birth": driver.get("dateOfBirth", ""),
        "url": driver.get("url", ""),
    }


def normalize_race(race: dict[str, Any]) -> dict[str, Any]:
    circuit = race.get("Circuit") or {}
    location = circuit.get("Location") or {}
    return {
        "season": race.get("season", ""),
        "round": race.get("round", ""),
        "name": race.get("raceName", ""),
        "circuit": circuit.get("circuitName", ""),
        "locality": location.get("locality", ""),
        "country": location.get("country", ""),
        "date": race.get("date", ""),
        "time": race.get("time", ""),
    }


def normalize_results(race: dict[str, Any], key: str = "Results") -> dict[str, Any]:
    rows = []
    for result in race.get(key) or []:
        driver = result.get("Driver") or {}
        constructor = result.get("Constructor") or {}
        fastest = result.get("FastestLap") or {}
        rows.append(
            {
                "position": result.get("position", "?"),
                "driver": f"{driver.get('givenName', '')} {driver.get('familyName', '')}".strip(),
                "code": driver.get("code", ""),
                "team": constructor.get("name", ""),
                "time": (result.get("Time") or {}).get("time") or result.get("status", ""),
                "points": result.get("points", "0"),
                "fastest_lap": fastest.get("rank") == "1",
            }
        )
    return {"race": normalize_race(race), "results": rows}


def first_race(body: Any, what: str, provider: str = "ergast") -> dict[str, Any]:
    races = mr_table(body, "RaceTable").get("Races") or []
    if not races:
        raise ProviderError(f"No {what} found", provider=provider, not_found=True)
    return races[0]


class ReferenceDataConnector(HttpDataProvider):
    """General race, driver and schedule reference data."""

    name = "ergast"

    def __init__(self, base_url: str = DEFAULT_ERGAST_BASE_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    def _handlers(self) -> Mapping[str, CommandHandler]:
        return {
            "driver": self.driver,
            "team": self.team,
            "standings": self.standings,
            "teams": self.teams,
            "schedule": self.schedule,
            "next": self.next_race,
            "last": self.last_race,
            "track": self.track,
            "compare": self.compare,
            "list": self.listing,
        }

    async def driver(self, args: Sequence[str]) -> dict[str, Any]:
        driver_id = to_identifier(args[0])
        candidates = [driver_id]
        if "_" in driver_id:
            candidates.append(driver_id.replace("_", ""))

        for candidate in candidates:
            try:
                body = await self._get_json(f"/drivers/{candidate}.json")
            except ProviderError as e:
                if e.not_found:
                    continue
                raise
            drivers = mr_table(body, "DriverTable").get("Drivers") or []
            if drivers:
                return normalize_driver(drivers[0])
        raise self._not_found(f'Driver "{args[0]}" not found')

    async def team(self, args: Sequence[str]) -> dict[str, Any]:
        constructor_id = to_identifier(args[0])
        body = await self._get_json(f"/constructors/{constructor_id}.json")
        constructors = mr_table(body, "ConstructorTable").get("Constructors") or []
        if not constructors:
            raise self._not_found(f'Team "{args[0]}" not found')
        constructor = constructors[0]

        titles = await self._get_json(
            f"/constructors/{constructor_id}/constructorStandings/1.json"
        )
        return {
            "constructor_id": constructor.get("constructorId", constructor_id),
            "name": constructor.get("name", ""),
            "nationality": constructor.get("nationality") or "Unknown",
            "championships": mr_total(titles),
            "url": constructor.get("url", ""),
        }

    async def standings(self, args: Sequence[str]) -> dict[str, Any]:
        body = await self._get_json("/current/driverStandings.json")
        lists = mr_table(body, "StandingsTable").get("StandingsLists") or []
        if not lists:
            raise self._not_found("No driver standings available")
        current = lists[0]
        rows = []
        for standing in current.get("DriverStandings") or []:
            driver = standing.get("Driver") or {}
            constructors = standing.get("Constructors") or [{}]
            rows.append(
                {
                    "position": standing.get("position", "?"),
                    "points": standing.get("points", "0"),
                    "wins": standing.get("wins", "0"),
                    "driver": f"{driver.get('givenName', '')} {driver.get('familyName', '')}".strip(),
                    "code": driver.get("code", ""),
                    "team": constructors[0].get("name", "Unknown Team"),
                }
            )
        return {"season": current.get("season", ""), "round": current.get("round", ""), "standings": rows}

    async def teams(self, args: Sequence[str]) -> dict[str, Any]:
        body = await self._get_json("/current/constructorStandings.json")
        lists = mr_table(body, "StandingsTable").get("StandingsLists") or []
        if not lists:
            raise self._not_found("No constructor standings available")
        current = lists[0]
        rows = []
        for standing in current.get("ConstructorStandings") or []:
            constructor = standing.get("Constructor") or {}
            rows.append(
                {
                    "position": standing.get("position", "?"),
                    "points": standing.get("points", "0"),
                    "wins": standing.get("wins", "0"),
                    "team": constructor.get("name", "Unknown Team"),
                    "nationality": constructor.get("nationality") or "Unknown",
                }
            )
        return {"season": current.get("season", ""), "round": current.get("round", ""), "standings": rows}

    async def schedule(self, args: Sequence[str]) -> dict[str, Any]:
        body = await self._get_json("/current.json")
        table = mr_table(body, "RaceTable")
        races = table.get("Races") or []
        if not races:
            raise self._not_found("No schedule available for the current season")
        return {"season": table.get("season", ""), "races": [normalize_race(r) for r in races]}

    async def next_race(self, args: Sequence[str]) -> dict[str, Any]:
        body = await self._get_json("/current/next.json")
        return normalize_race(first_race(body, "upcoming race"))

    async def last_race(self, args: Sequence[str]) -> dict[str, Any]:
        body = await self._get_json("/current/last/results.json")
        return normalize_results(first_race(body, "completed race"))

    async def track(self, args: Sequence[str]) -> dict[str, Any]:
        circuit_id = to_identifier(args[0])
        body = await self._get_json(f"/circuits/{circuit_id}.json")
        circuits = mr_table(body, "CircuitTable").get("Circuits") or []
        if not circuits:
            raise self._not_found(f'Track "{args[0]}" not found')
        circuit = circuits[0]
        location = circuit.get("Location") or {}
        return {
            "circuit_id": circuit.get("circuitId", circuit_id),
            "name": circuit.get("circuitName", ""),
            "locality": location.get("locality", ""),
            "country": location.get("country", ""),
            "lat": location.get("lat", ""),
            "long": location.get("long", ""),
            "url": circuit.get("url", ""),
        }

    async def _count(self, path: str) -> int:
        # limit=1 keeps the page small; only MRData.total is read
        return mr_total(await self._get_json(path, params={"limit": 1}))

    async def _driver_stats(self, name: str) -> dict[str, Any]:
        profile = await self.driver([name])
        driver_id = profile["driver_id"] or to_identifier(name)
        return {
            "id": driver_id,
            "name": f"{profile['given_name']} {profile['family_name']}".strip(),
            "nationality": profile["nationality"],
            "races": await self._count(f"/drivers/{driver_id}/results.json"),
            "wins": await self._count(f"/drivers/{driver_id}/results/1.json"),
            "poles": await self._count(f"/drivers/{driver_id}/qualifying/1.json"),
            "fastest_laps": await self._count(f"/drivers/{driver_id}/fastest/1/results.json"),
            "championships": await self._count(f"/drivers/{driver_id}/driverStandings/1.json"),
        }

    async def _team_stats(self, name: str) -> dict[str, Any]:
        profile = await self.team([name])
        constructor_id = profile["constructor_id"]
        return {
            "id": constructor_id,
            "name": profile["name"],
            "nationality": profile["nationality"],
            "races": await self._count(f"/constructors/{constructor_id}/results.json"),
            "wins": await self._count(f"/constructors/{constructor_id}/results/1.json"),
            "poles": await self._count(f"/constructors/{constructor_id}/qualifying/1.json"),
            "championships": profile["championships"],
        }

    async def compare(self, args: Sequence[str]) -> dict[str, Any]:
        kind, first, second = args[0], args[1], args[2]
        stats = self._driver_stats if kind == "driver" else self._team_stats
        return {"type": kind, "entries": [await stats(first), await stats(second)]}

    async def listing(self, args: Sequence[str]) -> dict[str, Any]:
        kind = args[0]
        if kind == "drivers":
            body = await self._get_json("/current/drivers.json")
            table = mr_table(body, "DriverTable")
            items = [normalize_driver(d) for d in table.get("Drivers") or []]
            items.sort(key=lambda d: (d["family_name"], d["given_name"]))
        elif kind == "teams":
            body = await self._get_json("/current/constructors.json")
            table = mr_table(body, "ConstructorTable")
            items = [
                {
                    "constructor_id": c.get("constructorId", ""),
                    "name": c.get("name", ""),
                    "nationality": c.get("nationality") or "Unknown",
                }
                for c in table.get("Constructors") or []
            ]
            items.sort(key=lambda c: c["name"])
        else:
            body = await self._get_json("/current/circuits.json")
            table = mr_table(body, "CircuitTable")
            items = [
                {
                    "circuit_id": c.get("circuitId", ""),
                    "name": c.get("circuitName", ""),
                    "locality": (c.get("Location") or {}).get("locality", ""),
                    "country": (c.get("Location") or {}).get("country", ""),
                }
                for c in table.get("Circuits") or []
            ]
            items.sort(key=lambda c: c["name"])
        if not items:
            raise self._not_found(f"No {kind} listed for the current season")
        return {"type": kind, "season": table.get("season", ""), "items": items}
