"""Shared fixtures: settings, canned Anthropic replies, stub summarizers.

No test touches the network. The summarization backend is an
AsyncMock(spec=httpx.AsyncClient) returning real httpx.Response objects.
"""

from __future__ import annotations

from collections.abc import Sequence
from unittest.mock import AsyncMock

import httpx
import pytest

from shipsight.assistant.models import Turn
from shipsight.config import Settings

API_URL = "https://api.anthropic.com/v1/messages"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> Settings:
    """Settings isolated from any local .env file."""
    values = {"ANTHROPIC_API_KEY": "test-key", "ANTHROPIC_AUTH_TOKEN": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_conversation(n_turns: int, chars: int = 100) -> list[Turn]:
    """Alternating user/assistant turns, each exactly `chars` long."""
    turns = []
    for i in range(n_turns):
        role = "user" if i % 2 == 0 else "assistant"
        prefix = f"{role} turn {i} "
        turns.append(Turn(role=role, content=(prefix + "x" * chars)[:chars]))
    return turns


def mock_httpx_response(status_code: int = 200, body: dict | None = None) -> httpx.Response:
    """Build a real httpx.Response for a canned API reply."""
    return httpx.Response(
        status_code=status_code,
        json=body or {},
        request=httpx.Request("POST", API_URL),
    )


def llm_response(text: str) -> dict:
    """Wrap text in Anthropic Messages API response shape."""
    return {
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 100, "output_tokens": 50},
    }


# ---------------------------------------------------------------------------
# Stub summarizers
# ---------------------------------------------------------------------------


class StubSummarizer:
    """Returns a preset synopsis and records every call."""

    domain = "shipping and logistics analytics"

    def __init__(self, text: str = "User asked about carrier spend; top carrier was FedEx at $12,400.") -> None:
        self.text = text
        self.calls: list[tuple[Turn, ...]] = []

    async def summarize(self, turns: Sequence[Turn]) -> str:
        self.calls.append(tuple(turns))
        return self.text


class RaisingSummarizer:
    """Breaks the no-raise contract, to exercise the compactor's guard."""

    domain = "shipping and logistics analytics"

    async def summarize(self, turns: Sequence[Turn]) -> str:
        raise RuntimeError("summarizer exploded")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def http_client() -> AsyncMock:
    """HTTP client whose post() returns a valid summary by default."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.post = AsyncMock(
        return_value=mock_httpx_response(200, llm_response("A concise synopsis."))
    )
    return client


@pytest.fixture
def failing_http_client() -> AsyncMock:
    """HTTP client that can never reach the summarization backend."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
    return client
