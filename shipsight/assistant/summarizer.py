"""Summarizer: condenses older conversation turns via a lightweight LLM call.

Calls the Anthropic Messages API through an injected httpx.AsyncClient.
Summarization is an optimization, not a correctness path: every failure
(network, timeout, non-200, malformed reply) collapses into a
deterministic fallback synopsis and never raises past this module.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

import httpx

from shipsight.assistant.models import Turn
from shipsight.config import Settings

logger = logging.getLogger(__name__)

_API_VERSION = "2023-06-01"

FALLBACK_TEMPLATE = "Previous conversation covered {count} exchanges about {domain}."
DEFAULT_DOMAIN = "shipping and logistics analytics"

# Wraps the synopsis in the synthetic turn that replaces summarized history
SUMMARY_TURN_TEMPLATE = "[Previous conversation summary: {summary}]"
_SUMMARY_TURN_PATTERN = re.compile(
    r"^\[Previous conversation summary: (?P<summary>.*)\]$", re.DOTALL
)

# ------------------------------------------------------------------
# Summarization Prompts
# ------------------------------------------------------------------

SUMMARY_SYSTEM_PROMPT = """\
You summarize conversations between a user and a shipping analytics assistant
so the assistant can keep answering coherently after older turns are dropped.
Output ONLY the summary as plain prose, 3-5 sentences. Preserve:
- The questions the user asked
- Concrete findings, numbers, carriers, lanes and date ranges mentioned
- Reports, charts or widgets that were created or changed
- Any explicit user corrections or stated preferences"""

UPDATE_SYSTEM_PROMPT = """\
You are updating a running summary of a conversation between a user and a
shipping analytics assistant with newer turns.
Output ONLY the updated summary as plain prose, 3-5 sentences.
PRESERVE earlier questions, numbers, artifacts and preferences unless the
newer turns explicitly supersede them. ADD what the newer turns contribute.
A user correction always wins over what it corrects."""

# Turn scoring for transcript truncation
_NUMBER_RE = re.compile(r"\d")
_ARTIFACT_WORDS = ("report", "chart", "widget", "dashboard", "schedule", "export")
_CORRECTION_WORDS = ("actually", "instead", "not what", "wrong", "prefer", "always", "never")
_TURN_SEPARATOR = "\n\n"


def fallback_summary(count: int, domain: str) -> str:
    """Deterministic synopsis used whenever the LLM call cannot complete."""
    return FALLBACK_TEMPLATE.format(count=count, domain=domain)


def wrap_summary(summary: str) -> str:
    return SUMMARY_TURN_TEMPLATE.format(summary=summary)


def is_summary_turn(turn: Turn) -> bool:
    """True for synthetic turns produced by a previous compaction."""
    return turn.role == "assistant" and _SUMMARY_TURN_PATTERN.match(turn.content) is not None


def unwrap_summary(turn: Turn) -> str | None:
    if turn.role != "assistant":
        return None
    match = _SUMMARY_TURN_PATTERN.match(turn.content)
    return match.group("summary") if match else None


def render_turn(turn: Turn) -> str:
    return f"{turn.role.upper()}: {turn.content}"


def render_transcript(turns: Sequence[Turn]) -> str:
    """Serialize turns as plain text: upper-cased role, blank line between turns."""
    return _TURN_SEPARATOR.join(render_turn(turn) for turn in turns)


def build_anthropic_headers(settings: Settings) -> dict[str, str]:
    """Build auth headers for Anthropic API calls.

    OAuth tokens (sk-ant-oat*) need Bearer auth plus beta headers;
    regular API keys use x-api-key.
    """
    headers: dict[str, str] = {
        "anthropic-version": _API_VERSION,
        "content-type": "application/json",
    }
    api_key = settings.anthropic_auth_token or settings.anthropic_api_key
    if settings.anthropic_auth_token or (api_key and "sk-ant-oat" in api_key):
        headers["authorization"] = f"Bearer {api_key}"
        if "sk-ant-oat" in api_key:
            headers["anthropic-beta"] = "oauth-2025-04-20"
    else:
        headers["x-api-key"] = api_key or ""
    return headers


class Summarizer:
    """Reduces a prefix of turns to one short synopsis.

    Holds no per-session state; one instance can serve every session.
    The caller owns the http client and its lifecycle.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._http = http_client

    @property
    def domain(self) -> str:
        return self._settings.summary_domain

    def fallback(self, count: int) -> str:
        return fallback_summary(count, self.domain)

    async def summarize(self, turns: Sequence[Turn]) -> str:
        """Return a 3-5 sentence synopsis of turns, or the fallback text."""
        if not turns:
            return self.fallback(0)
        if not self._http:
            logger.warning("No HTTP client for summarizer, using fallback summary")
            return self.fallback(len(turns))

        system, user_content = self._build_request(turns)
        try:
            response = await self._http.post(
                f"{self._settings.api_base_url}/v1/messages",
                json={
                    "model": self._settings.summary_model,
                    "max_tokens": self._settings.summary_max_tokens,
                    "system": system,
                    "messages": [{"role": "user", "content": user_content}],
                },
                headers=build_anthropic_headers(self._settings),
                timeout=httpx.Timeout(
                    self._settings.summary_timeout,
                    connect=self._settings.api_timeout_connect,
                ),
            )
        except httpx.TimeoutException as e:
            logger.warning("Summary call timed out, using fallback: %s", e)
            return self.fallback(len(turns))
        except httpx.HTTPError as e:
            logger.warning("Summary call failed, using fallback: %s", e)
            return self.fallback(len(turns))
        except Exception:
            # Closed client, unencodable credentials and the like
            logger.exception("Summary call raised, using fallback")
            return self.fallback(len(turns))

        if response.status_code != 200:
            logger.warning(
                "Summary LLM call failed: %d %s", response.status_code, response.text[:200]
            )
            return self.fallback(len(turns))

        try:
            text = self.extract_text(response.json().get("content"))
        except (ValueError, AttributeError) as e:
            logger.warning("Malformed summary response, using fallback: %s", e)
            return self.fallback(len(turns))

        if not text:
            logger.warning("Summary response had no text, using fallback")
            return self.fallback(len(turns))
        return text

    def _build_request(self, turns: Sequence[Turn]) -> tuple[str, str]:
        """Pick the prompt and render the user content for the API call."""
        existing = unwrap_summary(turns[0])
        if existing is not None:
            transcript = self._truncate_transcript(turns[1:])
            user_content = (
                f"## Existing Summary\n\n{existing}\n\n"
                f"## New Conversation\n\n{transcript}"
            )
            return UPDATE_SYSTEM_PROMPT, user_content
        return SUMMARY_SYSTEM_PROMPT, self._truncate_transcript(turns)

    @staticmethod
    def _score_turn(turn: Turn) -> float:
        score = 1.0
        lower = turn.content.lower()
        if turn.role == "user":
            score += 1.0
        if _NUMBER_RE.search(turn.content):
            score += 1.0
        if any(w in lower for w in _ARTIFACT_WORDS):
            score += 1.0
        if any(w in lower for w in _CORRECTION_WORDS):
            score += 2.0
        if len(turn.content) > 500 and ("```" in turn.content or turn.content.count("|") > 20):
            score -= 1.0
        return score

    def _truncate_transcript(self, turns: Sequence[Turn]) -> str:
        """Render turns as a transcript of at most summary_max_transcript_chars.

        Scores turns by information density: user questions, numbers,
        created artifacts and corrections score higher, long raw data
        dumps lower. Always keeps first and last turns. Fills the middle
        by score within budget, then restores chronological order.
        Selection works on whole turns, so a kept turn is never split.
        """
        max_chars = self._settings.summary_max_transcript_chars
        transcript = render_transcript(turns)
        if len(transcript) <= max_chars:
            return transcript
        if len(turns) <= 2:
            return transcript[:max_chars]

        rendered = [render_turn(turn) for turn in turns]
        scored = [(self._score_turn(turn), i, rendered[i]) for i, turn in enumerate(turns)]

        sep = len(_TURN_SEPARATOR)
        first = rendered[0]
        last = rendered[-1]
        budget = max_chars - len(first) - len(last) - sep

        if budget <= 0:
            half = (max_chars - sep) // 2
            return first[:half] + _TURN_SEPARATOR + last[:half]

        # Each kept middle turn also costs one separator
        middle = sorted(scored[1:-1], key=lambda x: (-x[0], x[1]))
        kept: set[int] = set()
        used = 0
        for _, idx, text in middle:
            cost = len(text) + sep
            if used + cost > budget:
                continue
            kept.add(idx)
            used += cost

        result = [first]
        result.extend(text for _, idx, text in scored[1:-1] if idx in kept)
        result.append(last)
        return _TURN_SEPARATOR.join(result)

    @staticmethod
    def extract_text(content: Any) -> str:
        """Concatenate text blocks from an API response; "" when malformed."""
        if not isinstance(content, list):
            return ""
        return "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        ).strip()
