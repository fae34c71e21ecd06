"""REST API for the assistant context manager.

Endpoints:
  POST   /context/check           - Budget status + whether compaction is due
  POST   /context/compact         - Compact a conversation
  POST   /tools/format            - Tool execution record -> status line
  POST   /sessions/{id}/turns     - Append a turn to an in-memory session
  POST   /sessions/{id}/prepare   - Compact a session's history if needed
  DELETE /sessions/{id}           - Drop a session
  GET    /health                  - Health check + active policy
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from shipsight.api.schemas import ConversationInput, TurnInput
from shipsight.assistant.manager import ContextManager
from shipsight.assistant.session import SessionStore

logger = logging.getLogger(__name__)


async def _read_json(request: Request) -> tuple[Any, JSONResponse | None]:
    try:
        return await request.json(), None
    except ValueError:
        return None, JSONResponse({"error": "Invalid JSON body"}, status_code=400)


def _validation_error(e: ValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": "Invalid request body", "details": e.errors(include_url=False, include_context=False)},
        status_code=400,
    )


def create_app(
    manager: ContextManager,
    sessions: SessionStore,
    lifespan: Any | None = None,
) -> Starlette:
    """Create the Starlette ASGI app with all routes."""

    async def check(request: Request) -> JSONResponse:
        """POST /context/check - Budget status for a conversation."""
        body, error = await _read_json(request)
        if error:
            return error
        try:
            turns = ConversationInput.model_validate(body).to_turns()
        except ValidationError as e:
            return _validation_error(e)

        status = manager.budget_status(turns)
        return JSONResponse(
            {"needs_compaction": status.needs_compaction, "budget": status.to_dict()}
        )

    async def compact(request: Request) -> JSONResponse:
        """POST /context/compact - Compact a conversation if over budget."""
        body, error = await _read_json(request)
        if error:
            return error
        try:
            turns = ConversationInput.model_validate(body).to_turns()
        except ValidationError as e:
            return _validation_error(e)

        try:
            result = await manager.compact(turns)
        except Exception as e:
            logger.exception("Compaction error")
            return JSONResponse({"error": str(e)}, status_code=500)
        return JSONResponse(result.to_dict())

    async def format_tool(request: Request) -> JSONResponse:
        """POST /tools/format - Status line for one tool execution."""
        body, error = await _read_json(request)
        if error:
            return error
        return JSONResponse(manager.format_tool_execution(body).to_dict())

    async def append_turn(request: Request) -> JSONResponse:
        """POST /sessions/{id}/turns - Append a turn to a session."""
        session_id = request.path_params["session_id"]
        body, error = await _read_json(request)
        if error:
            return error
        try:
            turn = TurnInput.model_validate(body)
        except ValidationError as e:
            return _validation_error(e)

        session = sessions.get_or_create(session_id)
        session.append(turn.role, turn.content)
        return JSONResponse(
            {"session_id": session_id, "budget": session.budget_status().to_dict()}
        )

    async def prepare_session(request: Request) -> JSONResponse:
        """POST /sessions/{id}/prepare - Compact a session's history if needed."""
        session_id = request.path_params["session_id"]
        session = sessions.get(session_id)
        if session is None:
            return JSONResponse({"error": "Session not found"}, status_code=404)
        try:
            result = await session.prepare()
        except Exception as e:
            logger.exception("Compaction error for session %s", session_id)
            return JSONResponse({"error": str(e)}, status_code=500)
        return JSONResponse({"session_id": session_id, **result.to_dict()})

    async def drop_session(request: Request) -> JSONResponse:
        """DELETE /sessions/{id} - Forget a session."""
        session_id = request.path_params["session_id"]
        if not sessions.drop(session_id):
            return JSONResponse({"error": "Session not found"}, status_code=404)
        return JSONResponse({"status": "dropped", "session_id": session_id})

    async def health(request: Request) -> JSONResponse:
        """GET /health - Liveness and the active compaction policy."""
        return JSONResponse(
            {
                "status": "ok",
                "sessions": len(sessions),
                "policy": manager.policy.to_dict(),
            }
        )

    routes = [
        Route("/context/check", check, methods=["POST"]),
        Route("/context/compact", compact, methods=["POST"]),
        Route("/tools/format", format_tool, methods=["POST"]),
        Route("/sessions/{session_id}/turns", append_turn, methods=["POST"]),
        Route("/sessions/{session_id}/prepare", prepare_session, methods=["POST"]),
        Route("/sessions/{session_id}", drop_session, methods=["DELETE"]),
        Route("/health", health, methods=["GET"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
