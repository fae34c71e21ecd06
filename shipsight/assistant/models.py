"""Value types shared by the assistant context manager.

All types are frozen dataclasses: a Conversation is a value owned by one
chat turn, and compaction always produces a new one instead of editing
the old.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

Role = Literal["user", "assistant"]
ROLES: frozenset[str] = frozenset({"user", "assistant"})

BudgetLevel = Literal["ok", "warning", "critical"]


@dataclass(frozen=True)
class Turn:
    """A single message in a conversation."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown role {self.role!r}; expected 'user' or 'assistant'")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Turn:
        return cls(role=data.get("role", ""), content=str(data.get("content") or ""))

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


# Ordered, chronological. The core accepts any sequence and returns tuples.
Conversation = Sequence[Turn]


@dataclass(frozen=True)
class CompactionResult:
    """Outcome of one compaction attempt."""

    was_compacted: bool
    conversation: tuple[Turn, ...]
    original_length: int
    new_length: int
    summary_text: str | None = None
    cost_saved: int | None = None  # may be negative; never clamped

    def to_dict(self) -> dict[str, Any]:
        return {
            "was_compacted": self.was_compacted,
            "conversation": [t.to_dict() for t in self.conversation],
            "summary_text": self.summary_text,
            "original_length": self.original_length,
            "new_length": self.new_length,
            "cost_saved": self.cost_saved,
        }


@dataclass(frozen=True)
class BudgetStatus:
    """Usage of a conversation against the compaction policy."""

    turn_count: int
    max_turns: int
    cost: int
    cost_budget: int
    percent_used: float
    level: BudgetLevel
    needs_compaction: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn_count": self.turn_count,
            "max_turns": self.max_turns,
            "cost": self.cost,
            "cost_budget": self.cost_budget,
            "percent_used": self.percent_used,
            "level": self.level,
            "needs_compaction": self.needs_compaction,
        }


@dataclass(frozen=True)
class ToolExecutionRecord:
    """One tool call as recorded by the tool-dispatch layer."""

    tool_name: str
    tool_input: Mapping[str, Any] = field(default_factory=dict)
    result: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> ToolExecutionRecord:
        """Build a record from camelCase or snake_case keys.

        Never raises: missing or mistyped fields become empty values.
        """
        if not isinstance(data, Mapping):
            return cls(tool_name="")
        name = data.get("toolName", data.get("tool_name"))
        tool_input = data.get("toolInput", data.get("tool_input"))
        result = data.get("result")
        return cls(
            tool_name=name if isinstance(name, str) else "",
            tool_input=tool_input if isinstance(tool_input, Mapping) else {},
            result=result if isinstance(result, Mapping) else {},
        )


class StatusIcon(str, Enum):
    """Symbolic icon tags; the UI maps them to its own glyphs."""

    SEARCH = "search"
    CHART = "chart"
    LEARNING = "learning"
    SUCCESS = "success"
    WARNING = "warning"
    QUESTION = "question"
    TOOL = "tool"
    ERROR = "error"


@dataclass(frozen=True)
class ToolStatusLine:
    """Human-readable status for one tool call."""

    icon: StatusIcon
    label: str
    detail: str = ""

    @property
    def is_failure(self) -> bool:
        return self.icon is StatusIcon.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "icon": self.icon.value,
            "label": self.label,
            "detail": self.detail,
            "is_failure": self.is_failure,
        }
