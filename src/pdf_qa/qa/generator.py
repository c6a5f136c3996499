"""Grounded answer generation over retrieved context."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pdf_qa.errors import ConfigurationError, GenerationError
from pdf_qa.qa.llm import ChatModelProvider
from pdf_qa.qa.transcript import render_transcript
from pdf_qa.types import ConversationTurn, QueryResult, utc_timestamp

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """
You are a helpful assistant that answers questions about an uploaded document.
Provide clear, accurate answers based on the provided document context.

Guidelines:
- Answer questions based primarily on the provided context
- If the context doesn't contain enough information, acknowledge this and provide what you can
- Be concise but thorough in your explanations
- Use examples when helpful
- If asked about code or algorithms, explain them step by step
- Maintain a helpful and educational tone
""".strip()


def build_answer_prompt(
    query: str, context: str, history: Sequence[ConversationTurn]
) -> str:
    conversation = f"\n\n{render_transcript(history)}\n" if history else ""
    return (
        f"{_SYSTEM_PROMPT}\n\n"
        f"Document Context:\n{context}\n"
        f"{conversation}\n"
        f"Current Question: {query}\n\n"
        "Please provide a helpful answer based on the document context and "
        "conversation history:"
    )


class AnswerGenerator:
    def __init__(self, llm: ChatModelProvider) -> None:
        self.llm = llm

    async def generate(
        self, query: str, context: str, history: Sequence[ConversationTurn]
    ) -> QueryResult:
        prompt = build_answer_prompt(query, context, history)
        try:
            answer = await self.llm.complete(prompt)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Error generating answer")
            raise GenerationError("Failed to generate answer", detail=str(exc)) from exc
        return QueryResult(answer=answer, timestamp=utc_timestamp())
