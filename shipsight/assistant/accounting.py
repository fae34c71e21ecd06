"""Token estimation and conversation accounting.

Both classes are pure: they read a conversation and return numbers or a
decision, never touching the turns themselves.
"""

from __future__ import annotations

from typing import Any

from shipsight.assistant.models import BudgetLevel, BudgetStatus, Conversation
from shipsight.assistant.policy import DEFAULT_CHARS_PER_TOKEN, CompactionPolicy


# Budget indicator bands, in percent of the tighter limit
WARNING_PERCENT = 70.0
CRITICAL_PERCENT = 90.0


# ------------------------------------------------------------------
# Token Estimator
# ------------------------------------------------------------------


class TokenEstimator:
    """Estimates token cost from character length (chars/4 by default).

    A cheap, deterministic proxy for what the model will charge. Rounds
    up, so any non-empty text costs at least one unit and "" costs zero.
    """

    def __init__(self, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> None:
        if chars_per_token < 1:
            raise ValueError("chars_per_token must be >= 1")
        self._chars_per_token = chars_per_token

    @property
    def chars_per_token(self) -> int:
        return self._chars_per_token

    def estimate(self, text: str | Any) -> int:
        """Estimate token count for text content."""
        if text is None:
            return 0
        length = len(text) if isinstance(text, str) else len(str(text))
        return -(-length // self._chars_per_token)


# ------------------------------------------------------------------
# Conversation Accountant
# ------------------------------------------------------------------


class ConversationAccountant:
    """Sums conversation cost and decides whether compaction is due.

    Compaction is due when EITHER the turn count or the estimated cost
    exceeds its limit, whichever comes first.
    """

    def __init__(
        self,
        policy: CompactionPolicy | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.policy = policy or CompactionPolicy()
        self.estimator = estimator or TokenEstimator(self.policy.chars_per_token)

    def total_cost(self, conversation: Conversation) -> int:
        return sum(self.estimator.estimate(turn.content) for turn in conversation)

    def needs_compaction(self, conversation: Conversation) -> bool:
        """Check if compaction is needed before a turn."""
        if not self.policy.enabled or not conversation:
            return False
        if len(conversation) > self.policy.max_turns:
            return True
        return self.total_cost(conversation) > self.policy.cost_budget

    def budget_status(self, conversation: Conversation) -> BudgetStatus:
        """Report usage against whichever limit is closer to being hit."""
        turn_count = len(conversation)
        cost = self.total_cost(conversation)
        percent = max(
            turn_count / self.policy.max_turns,
            cost / self.policy.cost_budget,
        ) * 100

        level: BudgetLevel = "ok"
        if percent >= CRITICAL_PERCENT:
            level = "critical"
        elif percent >= WARNING_PERCENT:
            level = "warning"

        return BudgetStatus(
            turn_count=turn_count,
            max_turns=self.policy.max_turns,
            cost=cost,
            cost_budget=self.policy.cost_budget,
            percent_used=round(percent, 1),
            level=level,
            needs_compaction=self.needs_compaction(conversation),
        )
