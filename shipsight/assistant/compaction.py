"""Conversation compaction: keep the recent turns, summarize the rest.

Runs before an assistant turn when the accountant says the history is
over budget. The input conversation is never modified; the compactor
returns a new tuple of turns plus metrics in a CompactionResult.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Protocol

from shipsight.assistant.accounting import ConversationAccountant
from shipsight.assistant.models import CompactionResult, Conversation, Turn
from shipsight.assistant.summarizer import DEFAULT_DOMAIN, fallback_summary, wrap_summary

logger = logging.getLogger(__name__)


class SummarizerLike(Protocol):
    """Anything that can turn a prefix of turns into a synopsis."""

    domain: str

    async def summarize(self, turns: Sequence[Turn]) -> str: ...


class ConversationCompactor:
    """Collapses old turns into one synthetic summary turn.

    The window is fixed-size: the last keep_recent turns are kept
    verbatim and everything before them is summarized. Deterministic for
    a given input and summarizer output.
    """

    def __init__(
        self,
        accountant: ConversationAccountant,
        summarizer: SummarizerLike,
    ) -> None:
        self.accountant = accountant
        self._summarizer = summarizer

    @property
    def keep_recent(self) -> int:
        return self.accountant.policy.keep_recent

    async def compact(self, conversation: Conversation) -> CompactionResult:
        """Compact the conversation if it is over budget, else return it unchanged."""
        turns = tuple(conversation)
        n = len(turns)

        if not self.accountant.needs_compaction(turns):
            return self._unchanged(turns)

        keep = self.keep_recent
        if n <= keep:
            # Over budget but nothing older than the recent window to summarize
            logger.debug(
                "Compaction needed but only %d turns (keep_recent=%d), skipping", n, keep
            )
            return self._unchanged(turns)

        to_summarize = turns[: n - keep]
        to_keep = turns[n - keep :]
        start_time = time.monotonic()

        summary_text = await self._summarize(to_summarize)

        synthetic = Turn(role="assistant", content=wrap_summary(summary_text))
        new_turns = (synthetic, *to_keep)

        cost_saved = self.accountant.total_cost(turns) - self.accountant.total_cost(new_turns)

        duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            "Compacted conversation: %d turns -> %d (summarized %d, cost saved %d, %d ms)",
            n,
            len(new_turns),
            len(to_summarize),
            cost_saved,
            duration_ms,
        )

        return CompactionResult(
            was_compacted=True,
            conversation=new_turns,
            summary_text=summary_text,
            original_length=n,
            new_length=len(new_turns),
            cost_saved=cost_saved,
        )

    async def _summarize(self, turns: tuple[Turn, ...]) -> str:
        try:
            return await self._summarizer.summarize(turns)
        except Exception:
            logger.exception("Summarizer raised; using fallback summary")
            domain = getattr(self._summarizer, "domain", DEFAULT_DOMAIN)
            return fallback_summary(len(turns), domain)

    @staticmethod
    def _unchanged(turns: tuple[Turn, ...]) -> CompactionResult:
        return CompactionResult(
            was_compacted=False,
            conversation=turns,
            original_length=len(turns),
            new_length=len(turns),
        )
