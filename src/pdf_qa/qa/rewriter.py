"""Standalone-question rewriting from conversation history."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pdf_qa.qa.llm import ChatModelProvider
from pdf_qa.qa.transcript import render_transcript
from pdf_qa.types import ConversationTurn

logger = logging.getLogger(__name__)

_REWRITE_INSTRUCTION = (
    "Based on the conversation history above, rewrite the current question as a "
    "standalone question that includes all necessary context. If the question "
    "already has all the context, return it as-is."
)


def build_rewrite_prompt(question: str, history: Sequence[ConversationTurn]) -> str:
    return (
        f"{render_transcript(history)}\n\n"
        f"Current question: {question}\n\n"
        f"{_REWRITE_INSTRUCTION}\n\n"
        "Standalone question:"
    )


class QueryRewriter:
    """Folds conversation context into a self-contained question.

    Rewriting is an optimization: on any failure the original question is
    used unchanged.
    """

    def __init__(self, llm: ChatModelProvider) -> None:
        self.llm = llm

    async def rewrite(self, question: str, history: Sequence[ConversationTurn]) -> str:
        if not history:
            return question

        try:
            standalone = await self.llm.complete(build_rewrite_prompt(question, history))
        except Exception as exc:
            logger.warning("Error transforming query, using original question: %s", exc)
            return question

        if not standalone:
            logger.warning("Empty rewrite response, using original question")
            return question
        logger.debug("Rewrote %r as %r", question, standalone)
        return standalone
