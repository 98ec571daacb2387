"""
Terminal Controller

HTTP endpoints for submitting commands to a tab's interpreter and reading
back its history, session state and completion candidates.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field

from race_terminal.core.app.terminal_session import TerminalSession, TerminalSessionManager
from race_terminal.core.domain.history import HistoryEntry
from race_terminal.core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["terminal"])


class CommandRequest(DomainModel):
    line: str = Field(max_length=1000)


class CommandResponse(DomainModel):
    accepted: bool
    entry: HistoryEntry | None = None


class SessionStateResponse(DomainModel):
    tab_id: str
    actor: str
    theme: str
    session_start: str
    processing: bool
    uptime: str


def get_session_manager(request: Request) -> TerminalSessionManager:
    return request.app.state.sessions  # type: ignore[no-any-return]


def _existing_session(manager: TerminalSessionManager, tab_id: str) -> TerminalSession:
    session = manager.get(tab_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No session for tab '{tab_id}'")
    return session


def _state_response(tab_id: str, session: TerminalSession) -> SessionStateResponse:
    state = session.session.get()
    return SessionStateResponse(
        tab_id=tab_id,
        actor=state.actor,
        theme=state.theme,
        session_start=state.session_start.isoformat(),
        processing=state.processing,
        uptime=session.uptime(),
    )


@router.post("/sessions/{tab_id}", response_model=SessionStateResponse, status_code=201)
async def open_session(
    tab_id: str, manager: TerminalSessionManager = Depends(get_session_manager)
) -> SessionStateResponse:
    """Open a tab's session, or return the existing one."""
    return _state_response(tab_id, manager.get_or_create(tab_id))


@router.post("/sessions/{tab_id}/commands", response_model=CommandResponse)
async def submit_command(
    tab_id: str,
    body: CommandRequest,
    manager: TerminalSessionManager = Depends(get_session_manager),
) -> CommandResponse:
    session = manager.get_or_create(tab_id)
    if session.dispatcher.processing:
        logger.debug("Tab %s is busy; rejecting submission", tab_id)
        return CommandResponse(accepted=False)
    entry = await session.submit(body.line)
    return CommandResponse(accepted=entry is not None, entry=entry)


@router.get("/sessions/{tab_id}/history", response_model=list[HistoryEntry])
async def get_history(
    tab_id: str,
    limit: int | None = Query(default=None, ge=0),
    manager: TerminalSessionManager = Depends(get_session_manager),
) -> list[HistoryEntry]:
    session = _existing_session(manager, tab_id)
    return list(session.history.display(limit))


@router.get("/sessions/{tab_id}/state", response_model=SessionStateResponse)
async def get_state(
    tab_id: str, manager: TerminalSessionManager = Depends(get_session_manager)
) -> SessionStateResponse:
    return _state_response(tab_id, _existing_session(manager, tab_id))


@router.get("/sessions/{tab_id}/suggestions")
async def get_suggestions(
    tab_id: str,
    q: str = "",
    manager: TerminalSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    session = _existing_session(manager, tab_id)
    return {
        "query": q,
        "suggestions": session.autocomplete.suggest(q),
        "details": [
            {"usage": usage, "description": description}
            for usage, description in session.autocomplete.describe(q)
        ],
    }


@router.delete("/sessions/{tab_id}", status_code=204)
async def close_session(
    tab_id: str, manager: TerminalSessionManager = Depends(get_session_manager)
) -> None:
    await manager.close(tab_id)


@router.get("/commands")
async def list_commands(
    manager: TerminalSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    registry = manager.registry
    return {
        "object": "list",
        "data": [
            {
                "name": descriptor.name,
                "usage": registry.usage(descriptor),
                "description": descriptor.description,
                "source": descriptor.source_label,
                "aliases": list(descriptor.all_aliases),
                "topics": list(descriptor.topics),
            }
            for descriptor in registry.all()
        ],
    }
