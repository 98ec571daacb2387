from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI

from race_terminal import __version__
from race_terminal.core.app.controllers.terminal_controller import router as terminal_router
from race_terminal.core.app.exception_handlers import register_exception_handlers
from race_terminal.core.app.terminal_session import TerminalSessionManager
from race_terminal.core.config.app_config import AppConfig
from race_terminal.core.domain.command_descriptor import ProviderKind
from race_terminal.core.interfaces.data_provider_interface import IDataProvider
from race_terminal.core.interfaces.key_value_store_interface import IKeyValueStore

logger = logging.getLogger(__name__)


def build_app(
    config: AppConfig | None = None,
    providers: Mapping[ProviderKind, IDataProvider] | None = None,
    store: IKeyValueStore | None = None,
) -> FastAPI:
    """
    Build the FastAPI application hosting one interpreter per browser tab.

    Args:
        config: Application configuration; defaults are used when omitted
        providers: Data providers to share between tabs; HTTP connectors
            built from the configuration when omitted
        store: Shared key-value store; built from the configuration when omitted

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig()
    manager = TerminalSessionManager(config, providers=providers, store=store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Application startup complete")
        yield
        logger.info("Shutting down application")
        await manager.aclose()

    app = FastAPI(
        title="Race Terminal",
        description="Interactive terminal session shell for Formula 1 data",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.app_config = config
    app.state.sessions = manager

    app.include_router(terminal_router)
    register_exception_handlers(app)
    return app
