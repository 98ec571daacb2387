"""
Per-command renderers.

Each renderer turns a normalized payload into display text. Provider
values are HTML-escaped before they are embedded, since the web front end
renders entry output as markup.
"""

from __future__ import annotations

import html
from collections.abc import Callable, Iterable
from typing import Any

from race_terminal.constants import SEPARATOR
from race_terminal.core.domain.command_descriptor import CommandKind

Renderer = Callable[[dict[str, Any]], str]

WEATHER_FIELDS = (
    ("air_temperature", "🌡️ Air Temp", "°C"),
    ("track_temperature", "🛣️ Track Temp", "°C"),
    ("humidity", "💧 Humidity", "%"),
    ("pressure", "🧭 Pressure", " hPa"),
    ("wind_speed", "💨 Wind Speed", " m/s"),
    ("wind_direction", "🧭 Wind Direction", "°"),
)


def esc(value: Any) -> str:
    if value is None or value == "":
        return "N/A"
    return html.escape(str(value), quote=False)


def _lines(*parts: str | Iterable[str]) -> str:
    out: list[str] = []
    for part in parts:
        if isinstance(part, str):
            out.append(part)
        else:
            out.extend(part)
    return "\n".join(out)


def _race_header(race: dict[str, Any]) -> list[str]:
    when = esc(race.get("date"))
    if race.get("time"):
        when = f"{when} {esc(race['time'])}"
    return [
        f"🏁 {esc(race.get('name'))} (Round {esc(race.get('round'))}, {esc(race.get('season'))})",
        f"📅 {when}",
        f"📍 {esc(race.get('circuit'))}, {esc(race.get('locality'))}, {esc(race.get('country'))}",
        SEPARATOR,
    ]


def render_help(payload: dict[str, Any]) -> str:
    lines: list[str] = []
    if payload.get("topic"):
        lines.append(f"🔍 Commands matching '{esc(payload['topic'])}'")
    else:
        lines.append("📖 Available commands")
    for section in payload.get("sections", []):
        lines.append("")
        lines.append(f"== {esc(section['title'])} ==")
        for command in section["commands"]:
            line = f"  {esc(command['usage'])}  {esc(command['description'])}"
            if command.get("aliases"):
                line += f" (aliases: {esc(', '.join(command['aliases']))})"
            lines.append(line)
    return "\n".join(lines)


def render_user(payload: dict[str, Any]) -> str:
    if payload.get("reset"):
        return f"👤 Username reset to {esc(payload['actor'])}"
    return f"👤 Username set to {esc(payload['actor'])}"


def render_theme(payload: dict[str, Any]) -> str:
    if "themes" not in payload:
        return f"🎨 Theme set to {esc(payload['theme'])}"
    lines = [f"🎨 Current theme: {esc(payload['current'])}"]
    for group, ids in payload["themes"].items():
        lines.append(f"{esc(group.title())} themes: {esc(', '.join(ids))}")
    lines.append(f"Use {esc(payload.get('usage', '/theme <theme>'))} to switch")
    return "\n".join(lines)


def render_driver(payload: dict[str, Any]) -> str:
    return _lines(
        f"👤 {esc(payload.get('given_name'))} {esc(payload.get('family_name'))}",
        f"🏷️ Code: {esc(payload.get('code'))}",
        f"#️⃣ Number: {esc(payload.get('number'))}",
        f"🌍 Nationality: {esc(payload.get('nationality'))}",
        f"🎂 Born: {esc(payload.get('date_of_birth'))}",
    )


def render_team(payload: dict[str, Any]) -> str:
    return _lines(
        f"🏎️ {esc(payload.get('name'))}",
        f"🌍 Nationality: {esc(payload.get('nationality'))}",
        f"🏆 Constructors' titles: {esc(payload.get('championships', 0))}",
    )


def render_standings(payload: dict[str, Any]) -> str:
    return _lines(
        f"🏆 Driver standings {esc(payload.get('season'))} (after round {esc(payload.get('round'))})",
        SEPARATOR,
        (
            f"P{esc(row['position'])} | {esc(row['driver'])} | {esc(row['team'])} | "
            f"{esc(row['points'])} pts | {esc(row['wins'])} wins"
            for row in payload.get("standings", [])
        ),
    )


def render_teams(payload: dict[str, Any]) -> str:
    return _lines(
        f"🏆 Constructor standings {esc(payload.get('season'))} (after round {esc(payload.get('round'))})",
        SEPARATOR,
        (
            f"P{esc(row['position'])} | {esc(row['team'])} | "
            f"{esc(row['points'])} pts | {esc(row['wins'])} wins"
            for row in payload.get("standings", [])
        ),
    )


def render_schedule(payload: dict[str, Any]) -> str:
    return _lines(
        f"📅 {esc(payload.get('season'))} season calendar",
        SEPARATOR,
        (
            f"R{esc(race['round'])} | {esc(race['date'])} | {esc(race['name'])} | "
            f"{esc(race['locality'])}, {esc(race['country'])}"
            for race in payload.get("races", [])
        ),
    )


def render_next(payload: dict[str, Any]) -> str:
    return _lines("⏭️ Next race", _race_header(payload))


def render_results(payload: dict[str, Any]) -> str:
    return _lines(
        _race_header(payload["race"]),
        (
            f"P{esc(row['position'])} | {esc(row['driver'])} | {esc(row['team'])} | "
            f"{esc(row['time'])} | +{esc(row['points'])} pts"
            + (' <span class="fastest-lap">●</span>' if row.get("fastest_lap") else "")
            for row in payload.get("results", [])
        ),
    )


def render_track(payload: dict[str, Any]) -> str:
    return _lines(
        f"🛣️ {esc(payload.get('name'))}",
        f"📍 {esc(payload.get('locality'))}, {esc(payload.get('country'))}",
        f"🧭 {esc(payload.get('lat'))}, {esc(payload.get('long'))}",
    )


def render_live(payload: dict[str, Any]) -> str:
    session = payload.get("session", {})
    return _lines(
        f"🔴 LIVE | {esc(session.get('name'))} | {esc(session.get('circuit'))}, "
        f"{esc(session.get('country'))} {esc(session.get('year'))}",
        SEPARATOR,
        (
            f"P{esc(row['position'])} | Car #{esc(row['driver_number'])} | "
            f"{esc(row['name'])} | {esc(row['team'])}"
            for row in payload.get("positions", [])
        ),
    )


def render_weather(payload: dict[str, Any]) -> str:
    lines = ["⛅ Track conditions"]
    for key, label, unit in WEATHER_FIELDS:
        value = payload.get(key)
        lines.append(f"{label}: {esc(value)}{unit if value is not None else ''}")
    lines.append(f"🌧️ Rainfall: {'Yes' if payload.get('rainfall') else 'Dry'}")
    lines.append(f"🕒 Updated: {esc(payload.get('date'))}")
    return "\n".join(lines)


def render_qualifying(payload: dict[str, Any]) -> str:
    return _lines(
        _race_header(payload["race"]),
        (
            f"P{esc(row['position'])} | {esc(row['driver'])} | {esc(row['team'])} | "
            f"Q1 {esc(row['q1'])} | Q2 {esc(row['q2'])} | Q3 {esc(row['q3'])}"
            for row in payload.get("results", [])
        ),
    )


def render_laps(payload: dict[str, Any]) -> str:
    title = "⏱️ Lap times"
    if payload.get("driver"):
        title += f" for {esc(str(payload['driver']).upper())}"
    return _lines(
        _race_header(payload["race"]),
        title,
        (
            f"Lap {esc(row['lap'])} | {esc(row['driver'])} | P{esc(row['position'])} | {esc(row['time'])}"
            for row in payload.get("laps", [])
        ),
    )


def render_pitstops(payload: dict[str, Any]) -> str:
    return _lines(
        _race_header(payload["race"]),
        (
            f"🔧 {esc(row['driver'])} | Stop {esc(row['stop'])} | Lap {esc(row['lap'])} | {esc(row['duration'])}s"
            for row in payload.get("stops", [])
        ),
    )


def render_fastest(payload: dict[str, Any]) -> str:
    return _lines(
        _race_header(payload["race"]),
        f"🟣 Fastest lap: {esc(payload.get('driver'))} ({esc(payload.get('team'))})",
        f"⏱️ {esc(payload.get('time'))} on lap {esc(payload.get('lap'))}",
        f"🚀 Average speed: {esc(payload.get('average_speed'))} km/h",
    )


def render_sprint(payload: dict[str, Any]) -> str:
    race = payload["race"]
    return _lines(
        f"⚡ Sprint | {esc(race.get('name'))}",
        render_results(payload),
    )


COMPARE_FIELDS = {
    "driver": (
        ("races", "Races"),
        ("wins", "Wins"),
        ("poles", "Poles"),
        ("fastest_laps", "Fastest laps"),
        ("championships", "Titles"),
    ),
    "team": (
        ("races", "Race starts"),
        ("wins", "Wins"),
        ("poles", "Poles"),
        ("championships", "Titles"),
    ),
}


def render_compare(payload: dict[str, Any]) -> str:
    first, second = payload["entries"]
    fields = COMPARE_FIELDS.get(payload.get("type", "driver"), COMPARE_FIELDS["driver"])
    return _lines(
        f"⚔️ {esc(first.get('name'))} vs {esc(second.get('name'))}",
        SEPARATOR,
        f"🌍 Nationality | {esc(first.get('nationality'))} | {esc(second.get('nationality'))}",
        (
            f"{label} | {esc(first.get(key, 0))} | {esc(second.get(key, 0))}"
            for key, label in fields
        ),
    )


def _list_row(kind: str, item: dict[str, Any]) -> str:
    if kind == "drivers":
        return (
            f"#{esc(item.get('number'))} | {esc(item.get('given_name'))} "
            f"{esc(item.get('family_name'))} ({esc(item.get('code'))}) | "
            f"{esc(item.get('nationality'))}"
        )
    if kind == "teams":
        return f"🏎️ {esc(item.get('name'))} | {esc(item.get('nationality'))}"
    return f"🛣️ {esc(item.get('name'))} | {esc(item.get('locality'))}, {esc(item.get('country'))}"


def render_list(payload: dict[str, Any]) -> str:
    kind = payload.get("type", "")
    return _lines(
        f"📋 {esc(str(kind).title())} {esc(payload.get('season'))}",
        SEPARATOR,
        (_list_row(kind, item) for item in payload.get("items", [])),
    )


def render_generic(payload: dict[str, Any]) -> str:
    return "\n".join(f"{esc(key)}: {esc(value)}" for key, value in payload.items())


RENDERERS: dict[CommandKind, Renderer] = {
    CommandKind.HELP: render_help,
    CommandKind.USER: render_user,
    CommandKind.THEME: render_theme,
    CommandKind.DRIVER: render_driver,
    CommandKind.TEAM: render_team,
    CommandKind.STANDINGS: render_standings,
    CommandKind.TEAMS: render_teams,
    CommandKind.SCHEDULE: render_schedule,
    CommandKind.NEXT: render_next,
    CommandKind.LAST: render_results,
    CommandKind.TRACK: render_track,
    CommandKind.LIVE: render_live,
    CommandKind.WEATHER: render_weather,
    CommandKind.RACE: render_results,
    CommandKind.QUALIFYING: render_qualifying,
    CommandKind.SPRINT: render_sprint,
    CommandKind.LAPS: render_laps,
    CommandKind.PITSTOPS: render_pitstops,
    CommandKind.FASTEST: render_fastest,
    CommandKind.COMPARE: render_compare,
    CommandKind.LIST: render_list,
}
