"""Request models validated before any pipeline work starts."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pdf_qa.types import ConversationTurn

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
MAX_QUESTION_LENGTH = 5000
MAX_HISTORY_TURNS = 100


class HistoryTurn(BaseModel):
    role: Literal["user", "model"]
    content: str = Field(min_length=1)

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=self.role, content=self.content)


class QueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId", pattern=UUID_PATTERN)
    question: str = Field(min_length=1, max_length=MAX_QUESTION_LENGTH)
    history: list[HistoryTurn] = Field(default_factory=list, max_length=MAX_HISTORY_TURNS)

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Question cannot be empty")
        return value

    def turns(self) -> list[ConversationTurn]:
        return [item.to_turn() for item in self.history]
