"""In-memory chat sessions with serialized compaction.

The context manager itself holds no locks. ChatSession is an opt-in
helper for hosts that want at-most-one compaction in flight per session
enforced for them. Nothing here survives a process restart.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict

from shipsight.assistant.manager import ContextManager
from shipsight.assistant.models import BudgetStatus, CompactionResult, Role, Turn

logger = logging.getLogger(__name__)

MAX_SESSIONS = 100


class ChatSession:
    """One chat session's live history."""

    def __init__(self, session_id: str, manager: ContextManager) -> None:
        self.session_id = session_id
        self._manager = manager
        self._turns: tuple[Turn, ...] = ()
        self._lock = asyncio.Lock()
        self.compaction_count = 0

    @property
    def turns(self) -> tuple[Turn, ...]:
        return self._turns

    def append(self, role: Role, content: str) -> Turn:
        turn = Turn(role=role, content=content)
        self._turns = (*self._turns, turn)
        return turn

    def budget_status(self) -> BudgetStatus:
        return self._manager.budget_status(self._turns)

    async def prepare(self) -> CompactionResult:
        """Compact the history if needed; returns what will be sent onward.

        Turns appended while a summary is being generated are kept after
        the compacted history.
        """
        async with self._lock:
            snapshot = self._turns
            result = await self._manager.compact(snapshot)
            if not result.was_compacted:
                return result

            # Preserve anything appended during the summarizer call
            arrived = self._turns[len(snapshot):]
            self._turns = (*result.conversation, *arrived)
            self.compaction_count += 1
            logger.info(
                "Session %s compacted (#%d): %d -> %d turns",
                self.session_id,
                self.compaction_count,
                result.original_length,
                len(self._turns),
            )
            return result


class SessionStore:
    """Hands out ChatSessions by id, evicting the least recently used."""

    def __init__(self, manager: ContextManager, max_sessions: int = MAX_SESSIONS) -> None:
        self._manager = manager
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, ChatSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get_or_create(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            return session

        session = ChatSession(session_id, self._manager)
        self._sessions[session_id] = session
        while len(self._sessions) > self._max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted session %s (max_sessions=%d)", evicted_id, self._max_sessions)
        return session

    def get(self, session_id: str) -> ChatSession | None:
        return self._sessions.get(session_id)

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
