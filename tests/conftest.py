from __future__ import annotations

from hashlib import blake2b
from math import sqrt
from pathlib import Path

import pytest
from langchain_core.embeddings import Embeddings

from pdf_qa.ingest.parser import Parser
from pdf_qa.types import ParsedDocument


class HashingEmbeddings(Embeddings):
    """Deterministic bag-of-words embedding; records every provider call."""

    def __init__(self, dimension: int = 64) -> None:
        self.dimension = dimension
        self.calls: list[list[str]] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append([text])
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        vector = [0.0 for _ in range(self.dimension)]
        for token in text.lower().split():
            digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            vector[idx] += -1.0 if digest[4] % 2 else 1.0
        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            vector[0] = 1.0
            return vector
        return [value / norm for value in vector]


class RecordingChatModel:
    """Chat model stand-in returning scripted replies or raising scripted errors."""

    def __init__(self, replies: list[str | Exception] | None = None) -> None:
        self.replies = list(replies or [])
        self.prompts: list[str] = []

    async def ainvoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else "default answer"
        if isinstance(reply, Exception):
            raise reply
        return reply


class StaticPdfParser(Parser):
    """Returns fixed pages for any .pdf path."""

    extensions = (".pdf",)

    def __init__(self, pages: list[str]) -> None:
        self.pages = pages

    def parse(self, path: Path, *, doc_id: str) -> ParsedDocument:
        return ParsedDocument.from_pages(doc_id, self.pages, metadata={"source": str(path)})


@pytest.fixture
def hashing_embeddings() -> HashingEmbeddings:
    return HashingEmbeddings()


@pytest.fixture
def chat_model() -> RecordingChatModel:
    return RecordingChatModel()


@pytest.fixture
def three_page_text() -> list[str]:
    # 799 + 799 + 798 characters plus two page separators: 2400 characters.
    return ["a" * 799, "b" * 799, "c" * 798]


@pytest.fixture
def static_parser():
    return StaticPdfParser
