"""Conversation history rendering shared by prompt builders."""

from __future__ import annotations

from collections.abc import Sequence

from pdf_qa.types import ConversationTurn


def render_transcript(history: Sequence[ConversationTurn]) -> str:
    lines = ["Previous conversation:"]
    for turn in history:
        speaker = "User" if turn.role == "user" else "Assistant"
        lines.append(f"{speaker}: {turn.content}")
    return "\n".join(lines)
