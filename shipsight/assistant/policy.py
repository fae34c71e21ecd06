"""Compaction policy value object.

One policy instance is shared by the accountant and the compactor, so
sessions with different budgets can run through the same code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shipsight.config import Settings

DEFAULT_MAX_TURNS = 8
DEFAULT_COST_BUDGET = 4000
DEFAULT_KEEP_RECENT = 4
DEFAULT_CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class CompactionPolicy:
    """Thresholds that decide when and how a conversation is compacted.

    max_turns:       compact when the turn count exceeds this
    cost_budget:     compact when the estimated cost exceeds this
    keep_recent:     turns kept verbatim after compaction
    chars_per_token: characters per cost unit for the estimator
    enabled:         master switch; when off nothing is ever compacted
    """

    max_turns: int = DEFAULT_MAX_TURNS
    cost_budget: int = DEFAULT_COST_BUDGET
    keep_recent: int = DEFAULT_KEEP_RECENT
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_turns < 1:
            raise ValueError("max_turns must be >= 1")
        if self.cost_budget < 1:
            raise ValueError("cost_budget must be >= 1")
        if self.keep_recent < 0:
            raise ValueError("keep_recent must be >= 0")
        if self.chars_per_token < 1:
            raise ValueError("chars_per_token must be >= 1")
        if self.keep_recent >= self.max_turns:
            raise ValueError(
                f"keep_recent ({self.keep_recent}) must be < max_turns ({self.max_turns})"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> CompactionPolicy:
        return cls(
            max_turns=settings.compaction_max_turns,
            cost_budget=settings.compaction_cost_budget,
            keep_recent=settings.compaction_keep_recent,
            chars_per_token=settings.chars_per_token,
            enabled=settings.compaction_enabled,
        )

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "max_turns": self.max_turns,
            "cost_budget": self.cost_budget,
            "keep_recent": self.keep_recent,
            "chars_per_token": self.chars_per_token,
            "enabled": self.enabled,
        }
