"""Pydantic request bodies for the REST surface."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from shipsight.assistant.models import Turn


class TurnInput(BaseModel):
    role: Literal["user", "assistant"]
    content: str

    def to_turn(self) -> Turn:
        return Turn(role=self.role, content=self.content)


class ConversationInput(BaseModel):
    """Body of /context/check and /context/compact."""

    conversation: list[TurnInput]

    def to_turns(self) -> tuple[Turn, ...]:
        return tuple(t.to_turn() for t in self.conversation)
