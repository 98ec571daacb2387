from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator

from race_terminal.connectors.base import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
)
from race_terminal.connectors.ergast import DEFAULT_ERGAST_BASE_URL
from race_terminal.connectors.openf1 import DEFAULT_OPENF1_BASE_URL
from race_terminal.constants import (
    DEFAULT_ACTOR,
    DEFAULT_CLOCK_TICK_SECONDS,
    DEFAULT_COMMAND_PREFIX,
    DEFAULT_DISPATCH_TIMEOUT_SECONDS,
    DEFAULT_THEME,
    EnvVar,
    PlainTextPolicy,
)
from race_terminal.core.common.exceptions import ConfigurationError
from race_terminal.core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)


def _env_to_int(name: str, default: int, env: Mapping[str, str]) -> int:
    """Return an environment variable parsed as an integer."""
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{name} must be an integer, got '{value}'", details={"variable": name}
        ) from e


def _env_to_float(name: str, default: float, env: Mapping[str, str]) -> float:
    """Return an environment variable parsed as a float."""
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{name} must be a number, got '{value}'", details={"variable": name}
        ) from e


def _merge_dicts(base: dict[str, Any], override: Mapping[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge_dicts(base[key], value)
        else:
            base[key] = value


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(DomainModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    log_file: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class SessionConfig(DomainModel):
    """Interpreter and session behaviour."""

    command_prefix: str = DEFAULT_COMMAND_PREFIX
    plain_text_policy: PlainTextPolicy = PlainTextPolicy.HELP
    # Seconds a provider call may take; <= 0 disables the bound
    dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS
    clock_tick: float = DEFAULT_CLOCK_TICK_SECONDS
    default_actor: str = DEFAULT_ACTOR
    default_theme: str = DEFAULT_THEME
    # JSON file for the persisted actor/theme; None keeps them in memory
    storage_path: str | None = None

    @field_validator("command_prefix")
    @classmethod
    def validate_command_prefix(cls, v: str) -> str:
        if not v or any(c.isspace() for c in v):
            raise ValueError("command prefix must be non-empty and contain no whitespace")
        return v

    @field_validator("default_actor")
    @classmethod
    def validate_default_actor(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default actor must not be empty")
        return v.strip()

    @field_validator("clock_tick")
    @classmethod
    def validate_clock_tick(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("clock tick must be positive")
        return v


class ProvidersConfig(DomainModel):
    """Upstream data provider endpoints and retry policy."""

    reference_base_url: str = DEFAULT_ERGAST_BASE_URL
    live_base_url: str = DEFAULT_OPENF1_BASE_URL
    results_base_url: str = DEFAULT_ERGAST_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS

    @field_validator("reference_base_url", "live_base_url", "results_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("API URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must not be negative")
        return v


class AppConfig(DomainModel):
    """Top-level application configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    session: SessionConfig = Field(default_factory=SessionConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
        """
        Collect configuration overrides from environment variables.

        Only variables that are actually set appear in the result, so it can
        be merged over file-based configuration.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        def put(section: str | None, key: str, value: Any) -> None:
            target = overrides if section is None else overrides.setdefault(section, {})
            target[key] = value

        def present(var: EnvVar) -> bool:
            return env.get(var.value) not in (None, "")

        if present(EnvVar.HOST):
            put(None, "host", env[EnvVar.HOST.value])
        if present(EnvVar.PORT):
            put(None, "port", _env_to_int(EnvVar.PORT.value, 8000, env))

        if present(EnvVar.COMMAND_PREFIX):
            put("session", "command_prefix", env[EnvVar.COMMAND_PREFIX.value])
        if present(EnvVar.PLAIN_TEXT_POLICY):
            put("session", "plain_text_policy", env[EnvVar.PLAIN_TEXT_POLICY.value].lower())
        if present(EnvVar.DISPATCH_TIMEOUT):
            put(
                "session",
                "dispatch_timeout",
                _env_to_float(
                    EnvVar.DISPATCH_TIMEOUT.value, DEFAULT_DISPATCH_TIMEOUT_SECONDS, env
                ),
            )
        if present(EnvVar.DEFAULT_ACTOR):
            put("session", "default_actor", env[EnvVar.DEFAULT_ACTOR.value])
        if present(EnvVar.DEFAULT_THEME):
            put("session", "default_theme", env[EnvVar.DEFAULT_THEME.value])
        if present(EnvVar.STORAGE_PATH):
            put("session", "storage_path", env[EnvVar.STORAGE_PATH.value])

        if present(EnvVar.REFERENCE_BASE_URL):
            put("providers", "reference_base_url", env[EnvVar.REFERENCE_BASE_URL.value])
        if present(EnvVar.LIVE_BASE_URL):
            put("providers", "live_base_url", env[EnvVar.LIVE_BASE_URL.value])
        if present(EnvVar.RESULTS_BASE_URL):
            put("providers", "results_base_url", env[EnvVar.RESULTS_BASE_URL.value])
        if present(EnvVar.PROVIDER_TIMEOUT):
            put(
                "providers",
                "timeout",
                _env_to_float(EnvVar.PROVIDER_TIMEOUT.value, DEFAULT_TIMEOUT_SECONDS, env),
            )
        if present(EnvVar.PROVIDER_MAX_RETRIES):
            put(
                "providers",
                "max_retries",
                _env_to_int(EnvVar.PROVIDER_MAX_RETRIES.value, DEFAULT_MAX_RETRIES, env),
            )

        if present(EnvVar.LOG_LEVEL):
            put("logging", "level", env[EnvVar.LOG_LEVEL.value])
        if present(EnvVar.LOG_FILE):
            put("logging", "log_file", env[EnvVar.LOG_FILE.value])

        return overrides


def load_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    use_dotenv: bool = True,
) -> AppConfig:
    """
    Load configuration from defaults, a YAML file and the environment.

    Args:
        config_path: Optional path to a YAML configuration file
        environ: Environment mapping; defaults to os.environ
        use_dotenv: Load a .env file into os.environ first

    Returns:
        AppConfig instance

    Raises:
        ConfigurationError: If the file or any value is invalid
    """
    if use_dotenv and environ is None:
        load_dotenv()

    config_data: dict[str, Any] = AppConfig().model_dump(mode="json")

    if config_path:
        path = Path(config_path)
        if not path.exists():
            logger.warning("Configuration file not found: %s", config_path)
        else:
            if path.suffix.lower() not in {".yaml", ".yml"}:
                raise ConfigurationError(
                    f"Unsupported configuration file format: {path.suffix}. "
                    "Use YAML (.yaml/.yml)."
                )
            try:
                with open(path, encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.critical("Error loading configuration file: %s", e)
                raise ConfigurationError(
                    f"Could not parse configuration file {path.name}"
                ) from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(
                    f"Configuration file {path.name} must contain a mapping"
                )
            _merge_dicts(config_data, file_config)

    _merge_dicts(config_data, AppConfig.from_env(environ))

    try:
        return AppConfig.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration", details={"errors": e.errors(include_url=False)}
        ) from e
