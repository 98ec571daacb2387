"""
Command-line entry point.

`race-terminal repl` runs one interpreter session in the local terminal;
`race-terminal serve` hosts the HTTP transport under uvicorn.
"""

import argparse
import asyncio
import logging
import socket
import sys
from collections.abc import Sequence

import uvicorn

from race_terminal import __version__
from race_terminal.core.app.terminal_session import TerminalSessionManager
from race_terminal.core.common.exceptions import ConfigurationError
from race_terminal.core.common.logging_utils import (
    configure_logging_with_environment_tagging,
)
from race_terminal.core.config.app_config import AppConfig, LogLevel, load_config

REPL_TAB_ID = "cli"
EXIT_WORDS = frozenset({"exit", "quit"})

logger = logging.getLogger(__name__)


def is_port_in_use(host: str, port: int) -> bool:
    """Check if a port is in use on a given host."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex((host, port)) == 0


def build_cli_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_file",
        metavar="PATH",
        help="Path to a YAML configuration file",
    )
    common.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        type=str.upper,
        help="Override the configured log level",
    )
    common.add_argument("--log-file", help="Also write logs to this file")

    parser = argparse.ArgumentParser(
        prog="race-terminal",
        description="Interactive terminal session shell for Formula 1 data",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser(
        "repl", parents=[common], help="Run an interactive session in this terminal"
    )
    serve = subparsers.add_parser(
        "serve", parents=[common], help="Serve the HTTP API with uvicorn"
    )
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    return parser


def apply_cli_args(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of cfg with command-line overrides applied."""
    logging_update: dict[str, object] = {}
    if getattr(args, "log_level", None):
        logging_update["level"] = LogLevel(args.log_level)
    if getattr(args, "log_file", None):
        logging_update["log_file"] = args.log_file

    update: dict[str, object] = {}
    if logging_update:
        update["logging"] = cfg.logging.model_copy(update=logging_update)
    if getattr(args, "host", None):
        update["host"] = args.host
    if getattr(args, "port", None):
        update["port"] = args.port
    return cfg.model_copy(update=update) if update else cfg


def _configure_logging(cfg: AppConfig) -> None:
    """Configure logging based on configuration."""
    configure_logging_with_environment_tagging(
        level=getattr(logging, cfg.logging.level.value),
        log_file=cfg.logging.log_file,
    )


def _prompt(actor: str) -> str:
    return f"{actor}@race-terminal:~$ "


async def run_repl(cfg: AppConfig) -> None:
    manager = TerminalSessionManager(cfg)
    session = manager.get_or_create(REPL_TAB_ID)
    prefix = cfg.session.command_prefix
    print(f"Race Terminal {__version__}. Type {prefix}help for commands, 'exit' to quit.")
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, _prompt(session.session.get().actor))
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if line.strip().lower() in EXIT_WORDS:
                break
            entry = await session.submit(line)
            if entry is not None:
                print(entry.output)
                print(f"[{session.uptime()}]")
    finally:
        await manager.aclose()


def _handle_startup_error(message: str) -> None:
    sys.stderr.write("\n" + "=" * 60 + "\n")
    sys.stderr.write("ERROR: Failed to start Race Terminal\n")
    sys.stderr.write("=" * 60 + "\n")
    sys.stderr.write(message + "\n")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_cli_parser()
    args = parser.parse_args(argv)
    command = args.command or "repl"

    try:
        cfg = apply_cli_args(load_config(getattr(args, "config_file", None)), args)
    except ConfigurationError as e:
        _handle_startup_error(e.message)
        return 1

    _configure_logging(cfg)

    if command == "serve":
        from race_terminal.core.app.application_builder import build_app

        if is_port_in_use(cfg.host, cfg.port):
            _handle_startup_error(f"Port {cfg.port} on {cfg.host} is already in use")
            return 1
        try:
            app = build_app(cfg)
        except ConfigurationError as e:
            _handle_startup_error(e.message)
            return 1
        logger.info("Serving Race Terminal on %s:%d", cfg.host, cfg.port)
        uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)
        return 0

    try:
        asyncio.run(run_repl(cfg))
    except ConfigurationError as e:
        _handle_startup_error(e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
