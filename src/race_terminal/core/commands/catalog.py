"""
Static command table.

The descriptors below are the whole command surface of the terminal. The
table is fixed for the process lifetime; adding a command means adding a
row here and a route for its CommandKind.
"""

from __future__ import annotations

from race_terminal.core.domain.command_descriptor import (
    ArgKind,
    ArgSpec,
    CommandDescriptor,
    CommandKind,
    ProviderKind,
)

ERGAST = "Ergast F1 API"
OPENF1 = "OpenF1 API"
RESULTS = "F1 Racing Results API"
SYSTEM = "System"

FIRST_SEASON = 1950
FIRST_QUALIFYING_SEASON = 2003
FIRST_PITSTOP_SEASON = 2012
FIRST_SPRINT_SEASON = 2021


def _year(minimum: int = FIRST_SEASON) -> ArgSpec:
    return ArgSpec(name="year", kind=ArgKind.INTEGER, minimum=minimum)


def _round(required: bool = True) -> ArgSpec:
    return ArgSpec(name="round", kind=ArgKind.INTEGER, required=required, minimum=1)


COMMAND_DESCRIPTORS: tuple[CommandDescriptor, ...] = (
    # System
    CommandDescriptor(
        kind=CommandKind.HELP,
        name="help",
        arg_spec=(ArgSpec(name="topic", required=False),),
        description="Show the command reference, or search it by topic",
        source_label=SYSTEM,
        provider=ProviderKind.SYSTEM,
        aliases=("h",),
        topics=("system",),
    ),
    CommandDescriptor(
        kind=CommandKind.USER,
        name="user",
        arg_spec=(ArgSpec(name="name"),),
        description="Set your terminal username, or 'reset' to restore the default",
        source_label=SYSTEM,
        provider=ProviderKind.SYSTEM,
        aliases=("u",),
        topics=("system",),
    ),
    CommandDescriptor(
        kind=CommandKind.THEME,
        name="theme",
        arg_spec=(ArgSpec(name="theme", required=False),),
        description="Change terminal colors to a color or F1 team theme",
        source_label=SYSTEM,
        provider=ProviderKind.SYSTEM,
        topics=("system",),
    ),
    # Drivers & teams
    CommandDescriptor(
        kind=CommandKind.DRIVER,
        name="driver",
        arg_spec=(ArgSpec(name="name"),),
        description="View F1 driver details, stats, and career info",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("d",),
        topics=("drivers",),
    ),
    CommandDescriptor(
        kind=CommandKind.TEAM,
        name="team",
        arg_spec=(ArgSpec(name="name"),),
        description="View F1 team history and details",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("tm",),
        topics=("drivers",),
    ),
    # Race information
    CommandDescriptor(
        kind=CommandKind.STANDINGS,
        name="standings",
        description="View current Drivers Championship standings",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("s", "st"),
        topics=("race", "drivers"),
    ),
    CommandDescriptor(
        kind=CommandKind.TEAMS,
        name="teams",
        description="View current Constructors Championship standings",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("cs",),
        topics=("race", "drivers"),
    ),
    CommandDescriptor(
        kind=CommandKind.SCHEDULE,
        name="schedule",
        description="View the current season race calendar",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("sc",),
        topics=("race",),
    ),
    CommandDescriptor(
        kind=CommandKind.NEXT,
        name="next",
        description="View details for the next race",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("n", "nx"),
        topics=("race",),
    ),
    CommandDescriptor(
        kind=CommandKind.LAST,
        name="last",
        description="View results from the most recent race",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("la",),
        topics=("race",),
    ),
    CommandDescriptor(
        kind=CommandKind.TRACK,
        name="track",
        arg_spec=(ArgSpec(name="name"),),
        description="View circuit details and location",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("t", "tr"),
        topics=("race",),
    ),
    # Live session data
    CommandDescriptor(
        kind=CommandKind.LIVE,
        name="live",
        description="View real-time timing and positions",
        source_label=OPENF1,
        provider=ProviderKind.LIVE,
        aliases=("l",),
        topics=("live",),
    ),
    CommandDescriptor(
        kind=CommandKind.WEATHER,
        name="weather",
        description="View current weather conditions at the circuit",
        source_label=OPENF1,
        provider=ProviderKind.LIVE,
        aliases=("w", "wx"),
        topics=("live",),
    ),
    # Historical data
    CommandDescriptor(
        kind=CommandKind.RACE,
        name="race",
        arg_spec=(_year(), _round(required=False)),
        description="View race results by year and round (last race of the season if round is omitted)",
        source_label=RESULTS,
        provider=ProviderKind.RESULTS,
        aliases=("r",),
        topics=("historical", "race"),
    ),
    CommandDescriptor(
        kind=CommandKind.QUALIFYING,
        name="qualifying",
        arg_spec=(_year(FIRST_QUALIFYING_SEASON), _round()),
        description="View qualifying results by year and round",
        source_label=RESULTS,
        provider=ProviderKind.RESULTS,
        aliases=("q", "ql"),
        topics=("historical",),
    ),
    CommandDescriptor(
        kind=CommandKind.SPRINT,
        name="sprint",
        arg_spec=(_year(FIRST_SPRINT_SEASON), _round()),
        description="View sprint race results by year and round",
        source_label=RESULTS,
        provider=ProviderKind.RESULTS,
        aliases=("sp",),
        topics=("historical",),
    ),
    CommandDescriptor(
        kind=CommandKind.LAPS,
        name="laps",
        arg_spec=(_year(), _round(), ArgSpec(name="driver", required=False)),
        description="View lap times from a race, optionally for one driver",
        source_label=RESULTS,
        provider=ProviderKind.RESULTS,
        topics=("historical",),
    ),
    CommandDescriptor(
        kind=CommandKind.PITSTOPS,
        name="pitstops",
        arg_spec=(_year(FIRST_PITSTOP_SEASON), _round()),
        description="View pit stop timings and strategies",
        source_label=RESULTS,
        provider=ProviderKind.RESULTS,
        aliases=("p", "ps"),
        topics=("historical",),
    ),
    CommandDescriptor(
        kind=CommandKind.FASTEST,
        name="fastest",
        arg_spec=(_year(), _round()),
        description="View fastest lap ranking from a race",
        source_label=RESULTS,
        provider=ProviderKind.RESULTS,
        aliases=("f", "fl"),
        topics=("historical",),
    ),
    # Comparisons & listings
    CommandDescriptor(
        kind=CommandKind.COMPARE,
        name="compare",
        arg_spec=(
            ArgSpec(name="type", choices=("driver", "team")),
            ArgSpec(name="first"),
            ArgSpec(name="second"),
        ),
        description="Compare career statistics of two drivers or two teams",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("m",),
        topics=("drivers",),
        shortcuts=(("md", "driver"), ("mt", "team")),
        joins_trailing_words=False,
    ),
    CommandDescriptor(
        kind=CommandKind.LIST,
        name="list",
        arg_spec=(ArgSpec(name="type", choices=("drivers", "teams", "tracks")),),
        description="List this season's drivers, teams or tracks",
        source_label=ERGAST,
        provider=ProviderKind.REFERENCE,
        aliases=("ls",),
        topics=("drivers",),
    ),
)

TOPIC_TITLES: dict[str, str] = {
    "system": "SYSTEM",
    "drivers": "DRIVERS & TEAMS",
    "race": "RACE INFORMATION",
    "live": "LIVE DATA",
    "historical": "HISTORICAL DATA",
}
