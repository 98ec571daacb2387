from enum import Enum

DEFAULT_COMMAND_PREFIX: str = "/"
DEFAULT_ACTOR: str = "guest"
DEFAULT_THEME: str = "default"

# Keys shared by every tab through the persistent key-value store
ACTOR_STORAGE_KEY: str = "terminal_username"
THEME_STORAGE_KEY: str = "terminal_theme"

DEFAULT_DISPATCH_TIMEOUT_SECONDS: float = 30.0
DEFAULT_CLOCK_TICK_SECONDS: float = 1.0

ACTOR_MIN_LENGTH: int = 2
ACTOR_MAX_LENGTH: int = 20
ACTOR_RESET_KEYWORD: str = "reset"

# Lexical markers the presentation layer uses to style a line as an error
ERROR_PREFIX: str = "❌ Error: "
ERROR_MARKERS: tuple[str, ...] = ("❌", "Error:", "not found", "No ")

SEPARATOR: str = "═" * 60


class EnvVar(str, Enum):
    """Environment variables understood by the configuration loader."""

    COMMAND_PREFIX = "RACE_TERMINAL_COMMAND_PREFIX"
    PLAIN_TEXT_POLICY = "RACE_TERMINAL_PLAIN_TEXT_POLICY"
    DISPATCH_TIMEOUT = "RACE_TERMINAL_DISPATCH_TIMEOUT"
    DEFAULT_ACTOR = "RACE_TERMINAL_DEFAULT_ACTOR"
    DEFAULT_THEME = "RACE_TERMINAL_DEFAULT_THEME"
    STORAGE_PATH = "RACE_TERMINAL_STORAGE_PATH"
    REFERENCE_BASE_URL = "RACE_TERMINAL_REFERENCE_BASE_URL"
    LIVE_BASE_URL = "RACE_TERMINAL_LIVE_BASE_URL"
    RESULTS_BASE_URL = "RACE_TERMINAL_RESULTS_BASE_URL"
    PROVIDER_TIMEOUT = "RACE_TERMINAL_PROVIDER_TIMEOUT"
    PROVIDER_MAX_RETRIES = "RACE_TERMINAL_PROVIDER_MAX_RETRIES"
    LOG_LEVEL = "RACE_TERMINAL_LOG_LEVEL"
    LOG_FILE = "RACE_TERMINAL_LOG_FILE"
    HOST = "RACE_TERMINAL_HOST"
    PORT = "RACE_TERMINAL_PORT"


class PlainTextPolicy(str, Enum):
    """What the parser does with input that lacks the command prefix."""

    REJECT = "reject"
    HELP = "help"
