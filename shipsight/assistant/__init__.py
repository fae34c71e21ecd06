"""Assistant context manager -- keeps chat history inside its budget.

Public API:
    ContextManager        - Host facade: needs_compaction / compact / format_tool_execution
    CompactionPolicy      - Thresholds (turn count, cost budget, keep-recent window)
    ConversationAccountant, TokenEstimator - Cost accounting
    ConversationCompactor - Keep-recent / summarize-the-rest compaction
    Summarizer            - LLM synopsis with deterministic fallback
    ToolCallReporter      - Tool execution -> status line registry
    ChatSession, SessionStore - In-memory sessions with serialized compaction

Models:
    Turn, CompactionResult, BudgetStatus, ToolExecutionRecord,
    ToolStatusLine, StatusIcon
"""

from shipsight.assistant.accounting import ConversationAccountant, TokenEstimator
from shipsight.assistant.compaction import ConversationCompactor
from shipsight.assistant.manager import ContextManager
from shipsight.assistant.models import (
    BudgetStatus,
    CompactionResult,
    StatusIcon,
    ToolExecutionRecord,
    ToolStatusLine,
    Turn,
)
from shipsight.assistant.policy import CompactionPolicy
from shipsight.assistant.session import ChatSession, SessionStore
from shipsight.assistant.summarizer import Summarizer, is_summary_turn
from shipsight.assistant.tool_status import ToolCallReporter, format_tool_execution

__all__ = [
    "ContextManager",
    "CompactionPolicy",
    "ConversationAccountant",
    "TokenEstimator",
    "ConversationCompactor",
    "Summarizer",
    "ToolCallReporter",
    "ChatSession",
    "SessionStore",
    "BudgetStatus",
    "CompactionResult",
    "StatusIcon",
    "ToolExecutionRecord",
    "ToolStatusLine",
    "Turn",
    "format_tool_execution",
    "is_summary_turn",
]
