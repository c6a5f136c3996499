"""Shared chat-model handle for the rewriter and the answer generator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from langchain_core.language_models import BaseChatModel

from pdf_qa.config import Settings, get_settings
from pdf_qa.errors import ConfigurationError

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[], BaseChatModel]


def openai_chat_factory(settings: Settings | None = None) -> ChatModelFactory:
    def _factory() -> BaseChatModel:
        resolved = settings or get_settings()
        if not resolved.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is not set")

        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=resolved.openai_model,
            temperature=resolved.llm_temperature,
            api_key=resolved.openai_api_key,
        )

    return _factory


class ChatModelProvider:
    """Builds the chat model on first use and reuses it afterwards."""

    def __init__(self, factory: ChatModelFactory | None = None) -> None:
        self._factory = factory or openai_chat_factory()
        self._model: BaseChatModel | None = None
        self._lock = threading.Lock()

    @property
    def model(self) -> BaseChatModel:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    self._model = self._factory()
                    logger.info("Chat model initialized: %s", type(self._model).__name__)
        return self._model

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the trimmed response text."""
        response = await self.model.ainvoke(prompt)
        return message_text(response).strip()


def message_text(message: Any) -> str:
    if isinstance(message, str):
        return message
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            else:
                parts.append(str(item))
        return " ".join(parts)
    return str(content)
