"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

PAGE_SEPARATOR = "\n\n"


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


@dataclass(slots=True)
class ParsedDocument:
    """Extracted text of a source document before chunking."""

    doc_id: str
    text: str
    pages: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_pages(
        cls, doc_id: str, pages: list[str], metadata: dict[str, Any] | None = None
    ) -> "ParsedDocument":
        return cls(
            doc_id=doc_id,
            text=PAGE_SEPARATOR.join(pages),
            pages=list(pages),
            metadata=dict(metadata or {}),
        )

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_offsets(self) -> list[int]:
        """Start offset of each page inside `text`, or [] when not derivable."""
        if not self.pages or PAGE_SEPARATOR.join(self.pages) != self.text:
            return []
        offsets: list[int] = []
        cursor = 0
        for page in self.pages:
            offsets.append(cursor)
            cursor += len(page) + len(PAGE_SEPARATOR)
        return offsets


@dataclass(slots=True, frozen=True)
class DocumentChunk:
    """A contiguous slice of document text."""

    chunk_id: str
    doc_id: str
    text: str
    chunk_index: int
    start: int
    end: int
    page_number: int | None = None


@dataclass(slots=True)
class VectorRecord:
    """One index entry per chunk, keyed by a deterministic id."""

    id: str
    values: list[float]
    metadata: dict[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "values": self.values, "metadata": self.metadata}


@dataclass(slots=True)
class VectorMatch:
    """A similarity-search hit returned by the index."""

    id: str
    score: float | None
    metadata: dict[str, Any]


@dataclass(slots=True, frozen=True)
class ConversationTurn:
    role: Literal["user", "model"]
    content: str


@dataclass(slots=True)
class QueryResult:
    answer: str
    timestamp: str


@dataclass(slots=True)
class IngestResult:
    success: bool
    page_count: int
    chunk_count: int
    document_id: str


@dataclass(slots=True)
class DocumentRecord:
    """Lifecycle record of an uploaded document."""

    document_id: str
    file_name: str
    upload_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: DocumentStatus = DocumentStatus.PROCESSING
    file_size: int | None = None
    page_count: int | None = None
    chunk_count: int | None = None
    error: str | None = None

    def to_public_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "documentId": self.document_id,
            "fileName": self.file_name,
            "uploadDate": self.upload_date.isoformat(),
            "status": self.status.value,
        }
        if self.file_size is not None:
            payload["fileSize"] = self.file_size
        if self.page_count is not None:
            payload["pageCount"] = self.page_count
        if self.chunk_count is not None:
            payload["chunkCount"] = self.chunk_count
        if self.error is not None:
            payload["error"] = self.error
        return payload


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
