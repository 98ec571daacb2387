from collections.abc import Callable

import httpx
import pytest
from race_terminal.connectors.ergast import (
    ReferenceDataConnector,
    normalize_results,
    to_identifier,
)
from race_terminal.core.common.exceptions import ProviderError

BASE_URL = "https://ergast.test/f1"

HAMILTON = {
    "driverId": "hamilton",
    "permanentNumber": "44",
    "code": "HAM",
    "givenName": "Lewis",
    "familyName": "Hamilton",
    "dateOfBirth": "1985-01-07",
    "nationality": "British",
    "url": "http://en.wikipedia.org/wiki/Lewis_Hamilton",
}

BAHRAIN = {
    "season": "2024",
    "round": "1",
    "raceName": "Bahrain Grand Prix",
    "date": "2024-03-02",
    "time": "15:00:00Z",
    "Circuit": {
        "circuitName": "Bahrain International Circuit",
        "Location": {"locality": "Sakhir", "country": "Bahrain"},
    },
}


def _connector(
    handler: Callable[[httpx.Request], httpx.Response], max_retries: int = 0
) -> ReferenceDataConnector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ReferenceDataConnector(
        BASE_URL, client=client, max_retries=max_retries, retry_delay=0
    )


def _mr(**tables) -> dict:
    return {"MRData": {"total": "1", **tables}}


@pytest.mark.parametrize(
    "text, expected",
    [("Hamilton", "hamilton"), ("Max  Verstappen", "max_verstappen"), ("red bull", "red_bull")],
)
def test_to_identifier(text: str, expected: str) -> None:
    assert to_identifier(text) == expected


@pytest.mark.asyncio
async def test_driver_is_normalized() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json=_mr(DriverTable={"Drivers": [HAMILTON]}))

    payload = await _connector(handler).fetch("driver", ["Hamilton"])

    assert seen == ["/f1/drivers/hamilton.json"]
    assert payload["given_name"] == "Lewis"
    assert payload["number"] == "44"
    assert payload["nationality"] == "British"


@pytest.mark.asyncio
async def test_driver_falls_back_to_joined_id() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("max_verstappen.json"):
            return httpx.Response(200, json=_mr(DriverTable={"Drivers": []}))
        return httpx.Response(200, json=_mr(DriverTable={"Drivers": [HAMILTON]}))

    await _connector(handler).fetch("driver", ["max verstappen"])

    assert seen == ["/f1/drivers/max_verstappen.json", "/f1/drivers/maxverstappen.json"]


@pytest.mark.asyncio
async def test_unknown_driver_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_mr(DriverTable={"Drivers": []}))

    with pytest.raises(ProviderError) as exc_info:
        await _connector(handler).fetch("driver", ["nobody"])
    assert exc_info.value.not_found
    assert exc_info.value.message == 'Driver "nobody" not found'


@pytest.mark.asyncio
async def test_team_counts_championships() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "constructorStandings" in request.url.path:
            return httpx.Response(200, json={"MRData": {"total": "16"}})
        return httpx.Response(
            200,
            json=_mr(
                ConstructorTable={
                    "Constructors": [
                        {"constructorId": "ferrari", "name": "Ferrari", "nationality": "Italian"}
                    ]
                }
            ),
        )

    payload = await _connector(handler).fetch("team", ["Ferrari"])

    assert payload["name"] == "Ferrari"
    assert payload["championships"] == 16


@pytest.mark.asyncio
async def test_standings_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/f1/current/driverStandings.json"
        return httpx.Response(
            200,
            json=_mr(
                StandingsTable={
                    "StandingsLists": [
                        {
                            "season": "2024",
                            "round": "5",
                            "DriverStandings": [
                                {
                                    "position": "1",
                                    "points": "110",
                                    "wins": "4",
                                    "Driver": HAMILTON,
                                    "Constructors": [{"name": "Mercedes"}],
                                }
                            ],
                        }
                    ]
                }
            ),
        )

    payload = await _connector(handler).fetch("standings", [])

    assert payload["season"] == "2024"
    assert payload["standings"] == [
        {
            "position": "1",
            "points": "110",
            "wins": "4",
            "driver": "Lewis Hamilton",
            "code": "HAM",
            "team": "Mercedes",
        }
    ]


@pytest.mark.asyncio
async def test_next_race_without_races_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_mr(RaceTable={"Races": []}))

    with pytest.raises(ProviderError) as exc_info:
        await _connector(handler).fetch("next", [])
    assert exc_info.value.not_found


@pytest.mark.asyncio
async def test_next_race_is_normalized() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_mr(RaceTable={"Races": [BAHRAIN]}))

    payload = await _connector(handler).fetch("next", [])

    assert payload["name"] == "Bahrain Grand Prix"
    assert payload["locality"] == "Sakhir"
    assert payload["time"] == "15:00:00Z"


@pytest.mark.asyncio
async def test_http_404_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="missing")

    with pytest.raises(ProviderError) as exc_info:
        await _connector(handler).fetch("track", ["monza"])
    assert exc_info.value.not_found


@pytest.mark.asyncio
async def test_http_500_is_provider_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    with pytest.raises(ProviderError) as exc_info:
        await _connector(handler).fetch("schedule", [])
    assert not exc_info.value.not_found
    assert "HTTP 503" in exc_info.value.message


@pytest.mark.asyncio
async def test_malformed_body_is_provider_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(ProviderError, match="malformed"):
        await _connector(handler).fetch("schedule", [])


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json=_mr(RaceTable={"season": "2024", "Races": [BAHRAIN]}))

    payload = await _connector(handler, max_retries=2).fetch("schedule", [])

    assert attempts == 3
    assert payload["season"] == "2024"
    assert len(payload["races"]) == 1


@pytest.mark.asyncio
async def test_exhausted_retries_raise() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError, match="Could not reach ergast"):
        await _connector(handler, max_retries=2).fetch("schedule", [])
    assert attempts == 3


@pytest.mark.asyncio
async def test_unsupported_command_is_rejected() -> None:
    connector = _connector(lambda request: httpx.Response(200, json={}))
    assert "live" not in connector.supported_commands
    with pytest.raises(ProviderError):
        await connector.fetch("live", [])


@pytest.mark.asyncio
async def test_borrowed_client_is_left_open() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    connector = ReferenceDataConnector(BASE_URL, client=client)

    await connector.aclose()

    assert not client.is_closed
    await client.aclose()


def test_results_are_normalized() -> None:
    race = dict(
        BAHRAIN,
        Results=[
            {
                "position": "1",
                "points": "26",
                "status": "Finished",
                "Driver": HAMILTON,
                "Constructor": {"name": "Mercedes"},
                "Time": {"time": "1:31:44.742"},
                "FastestLap": {"rank": "1"},
            },
            {
                "position": "2",
                "points": "18",
                "status": "+1 Lap",
                "Driver": {"givenName": "Max", "familyName": "Verstappen"},
                "Constructor": {"name": "Red Bull"},
            },
        ],
    )

    payload = normalize_results(race)

    assert payload["race"]["round"] == "1"
    assert [row["time"] for row in payload["results"]] == ["1:31:44.742", "+1 Lap"]
    assert [row["fastest_lap"] for row in payload["results"]] == [True, False]


@pytest.mark.asyncio
async def test_compare_drivers_counts_career_totals() -> None:
    totals = {
        "/f1/drivers/hamilton/results.json": "356",
        "/f1/drivers/hamilton/results/1.json": "105",
        "/f1/drivers/hamilton/qualifying/1.json": "104",
        "/f1/drivers/hamilton/fastest/1/results.json": "67",
        "/f1/drivers/hamilton/driverStandings/1.json": "7",
    }
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path in totals:
            assert request.url.params["limit"] == "1"
            return httpx.Response(200, json={"MRData": {"total": totals[request.url.path]}})
        return httpx.Response(200, json=_mr(DriverTable={"Drivers": [HAMILTON]}))

    payload = await _connector(handler).fetch("compare", ["driver", "hamilton", "hamilton"])

    assert payload["type"] == "driver"
    first, second = payload["entries"]
    assert first == second
    assert first["name"] == "Lewis Hamilton"
    assert (first["races"], first["wins"], first["poles"]) == (356, 105, 104)
    assert (first["fastest_laps"], first["championships"]) == (67, 7)
    assert seen.count("/f1/drivers/hamilton.json") == 2


@pytest.mark.asyncio
async def test_compare_teams_reports_unknown_team() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "nobody" in request.url.path:
            return httpx.Response(200, json=_mr(ConstructorTable={"Constructors": []}))
        if request.url.path == "/f1/constructors/ferrari.json":
            return httpx.Response(
                200,
                json=_mr(
                    ConstructorTable={
                        "Constructors": [{"constructorId": "ferrari", "name": "Ferrari"}]
                    }
                ),
            )
        return httpx.Response(200, json={"MRData": {"total": "16"}})

    with pytest.raises(ProviderError) as exc_info:
        await _connector(handler).fetch("compare", ["team", "ferrari", "nobody"])
    assert exc_info.value.not_found
    assert exc_info.value.message == 'Team "nobody" not found'


@pytest.mark.asyncio
async def test_list_drivers_is_sorted_by_family_name() -> None:
    verstappen = dict(
        HAMILTON, driverId="max_verstappen", givenName="Max", familyName="Verstappen"
    )
    albon = dict(HAMILTON, driverId="albon", givenName="Alexander", familyName="Albon")

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/f1/current/drivers.json"
        return httpx.Response(
            200,
            json=_mr(DriverTable={"season": "2024", "Drivers": [verstappen, HAMILTON, albon]}),
        )

    payload = await _connector(handler).fetch("list", ["drivers"])

    assert payload["type"] == "drivers"
    assert payload["season"] == "2024"
    assert [d["family_name"] for d in payload["items"]] == ["Albon", "Hamilton", "Verstappen"]


@pytest.mark.asyncio
async def test_list_tracks_reads_circuits() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/f1/current/circuits.json"
        return httpx.Response(
            200,
            json=_mr(
                CircuitTable={
                    "season": "2024",
                    "Circuits": [
                        {
                            "circuitId": "monza",
                            "circuitName": "Autodromo Nazionale di Monza",
                            "Location": {"locality": "Monza", "country": "Italy"},
                        }
                    ],
                }
            ),
        )

    payload = await _connector(handler).fetch("list", ["tracks"])

    assert payload["items"] == [
        {
            "circuit_id": "monza",
            "name": "Autodromo Nazionale di Monza",
            "locality": "Monza",
            "country": "Italy",
        }
    ]


@pytest.mark.asyncio
async def test_empty_team_list_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_mr(ConstructorTable={"Constructors": []}))

    with pytest.raises(ProviderError) as exc_info:
        await _connector(handler).fetch("list", ["teams"])
    assert exc_info.value.not_found
