"""Host-facing facade over the context-manager components.

Wires one CompactionPolicy into an accountant, summarizer, compactor and
tool reporter, and exposes the three calls an embedding application
makes: needs_compaction, compact and format_tool_execution.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from shipsight.assistant.accounting import ConversationAccountant, TokenEstimator
from shipsight.assistant.compaction import ConversationCompactor, SummarizerLike
from shipsight.assistant.models import (
    BudgetStatus,
    CompactionResult,
    Conversation,
    ToolExecutionRecord,
    ToolStatusLine,
)
from shipsight.assistant.policy import CompactionPolicy
from shipsight.assistant.summarizer import Summarizer
from shipsight.assistant.tool_status import ToolCallReporter
from shipsight.assistant.tool_status import reporter as default_reporter
from shipsight.config import Settings


class ContextManager:
    """Decides when to compact, compacts, and formats tool calls."""

    def __init__(
        self,
        summarizer: SummarizerLike,
        policy: CompactionPolicy | None = None,
        reporter: ToolCallReporter | None = None,
    ) -> None:
        self.policy = policy or CompactionPolicy()
        self.accountant = ConversationAccountant(
            self.policy, TokenEstimator(self.policy.chars_per_token)
        )
        self.compactor = ConversationCompactor(self.accountant, summarizer)
        self.reporter = reporter or default_reporter

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> ContextManager:
        return cls(
            Summarizer(settings, http_client),
            policy=CompactionPolicy.from_settings(settings),
        )

    def needs_compaction(self, conversation: Conversation) -> bool:
        return self.accountant.needs_compaction(conversation)

    def budget_status(self, conversation: Conversation) -> BudgetStatus:
        return self.accountant.budget_status(conversation)

    async def compact(self, conversation: Conversation) -> CompactionResult:
        return await self.compactor.compact(conversation)

    def format_tool_execution(
        self, record: ToolExecutionRecord | Mapping[str, Any]
    ) -> ToolStatusLine:
        return self.reporter.format(record)
