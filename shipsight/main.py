"""shipsight context-manager service entry point.

Initializes components and starts the server:
  Settings -> httpx client -> ContextManager -> SessionStore -> App -> Uvicorn

The shared httpx client is closed by the Starlette lifespan on the same
event loop uvicorn runs.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from starlette.applications import Starlette

from shipsight.api.rest import create_app
from shipsight.assistant.manager import ContextManager
from shipsight.assistant.session import SessionStore
from shipsight.config import Settings

logger = logging.getLogger(__name__)


def build_app(settings: Settings) -> Starlette:
    """Build the Starlette app around one ContextManager."""
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.summary_timeout, connect=settings.api_timeout_connect),
        limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
    )
    manager = ContextManager.from_settings(settings, http_client)
    sessions = SessionStore(manager, max_sessions=settings.max_sessions)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        app.state.manager = manager
        app.state.sessions = sessions
        logger.info(
            "Context manager started: max_turns=%d, cost_budget=%d, keep_recent=%d",
            manager.policy.max_turns,
            manager.policy.cost_budget,
            manager.policy.keep_recent,
        )
        yield
        await http_client.aclose()

    return create_app(manager, sessions, lifespan=lifespan)


def main() -> None:
    """Entry point: parse settings, build app, run server."""
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    logger.info("Summary model: %s (timeout %.0fs)", settings.summary_model, settings.summary_timeout)
    if not settings.anthropic_api_key and not settings.anthropic_auth_token:
        logger.warning(
            "Neither ANTHROPIC_API_KEY nor ANTHROPIC_AUTH_TOKEN is set; "
            "summaries will use the fallback text"
        )

    app = build_app(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
