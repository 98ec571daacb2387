from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from pydantic import ValidationError
from starlette.responses import JSONResponse

from race_terminal.core.common.exceptions import ConfigurationError, RaceTerminalError

logger = logging.getLogger(__name__)


async def race_terminal_error_handler(
    request: Request, exc: RaceTerminalError
) -> JSONResponse:
    """Map domain errors that escape a route to their JSON form."""
    status_code = 500 if isinstance(exc, ConfigurationError) else 400
    logger.error("Unhandled %s: %s", exc.__class__.__name__, exc.message, exc_info=True)
    return JSONResponse(exc.to_dict(), status_code=status_code)


async def pydantic_validation_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle Pydantic validation errors as 422 Unprocessable Entity."""
    logger.warning("Validation error: %s", exc, exc_info=True)
    details = exc.errors(include_url=False) if isinstance(exc, ValidationError) else None
    return JSONResponse(
        {
            "error": {
                "message": "Validation failed",
                "type": "ValidationError",
                "details": details,
            }
        },
        status_code=422,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RaceTerminalError, race_terminal_error_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_error_handler)
