"""Vector index backends and the document-scoped index gateway."""

from __future__ import annotations

import asyncio
import logging
import threading
from math import sqrt
from typing import Any, Protocol

from pdf_qa.config import RetrievalConfig, Settings, get_settings
from pdf_qa.errors import ConfigurationError, PdfQaError, ProviderError, ValidationError
from pdf_qa.types import DocumentChunk, VectorMatch, VectorRecord

logger = logging.getLogger(__name__)


class VectorStore(Protocol):
    """Minimal similarity-search backend contract."""

    def upsert(self, records: list[VectorRecord]) -> None:
        """Insert or overwrite records by id."""

    def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Return top-k matches by descending similarity."""


class InMemoryVectorStore:
    """Deterministic vector store used for tests and local runs."""

    def __init__(self) -> None:
        self._store: dict[str, VectorRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._store)

    def upsert(self, records: list[VectorRecord]) -> None:
        with self._lock:
            for record in records:
                self._store[record.id] = record

    def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        with self._lock:
            candidates = [
                rec
                for rec in self._store.values()
                if _metadata_match(rec.metadata, metadata_filter)
            ]
        ranked = sorted(
            (
                VectorMatch(
                    id=rec.id,
                    score=_cosine_similarity(vector, rec.values),
                    metadata=dict(rec.metadata),
                )
                for rec in candidates
            ),
            key=lambda match: match.score or 0.0,
            reverse=True,
        )
        return ranked[:top_k]


class PineconeVectorStore:
    """Pinecone serverless index adapter."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._index: Any | None = None
        self._lock = threading.Lock()

    @property
    def index(self) -> Any:
        if self._index is None:
            with self._lock:
                if self._index is None:
                    self._index = self._connect()
        return self._index

    def _connect(self) -> Any:
        settings = self._settings or get_settings()
        if not settings.pinecone_api_key:
            raise ConfigurationError("PINECONE_API_KEY environment variable is not set")
        if not settings.pinecone_index_name:
            raise ConfigurationError("PINECONE_INDEX_NAME environment variable is not set")

        from pinecone import Pinecone

        client = Pinecone(api_key=settings.pinecone_api_key)
        logger.info("Connected to Pinecone index %s", settings.pinecone_index_name)
        return client.Index(settings.pinecone_index_name)

    def upsert(self, records: list[VectorRecord]) -> None:
        self.index.upsert(vectors=[record.as_dict() for record in records])

    def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        response = self.index.query(
            vector=vector,
            top_k=top_k,
            include_metadata=True,
            filter=metadata_filter,
        )
        return [
            VectorMatch(
                id=str(match.id),
                score=float(match.score) if match.score is not None else None,
                metadata=dict(match.metadata or {}),
            )
            for match in (response.matches or [])
        ]


class VectorIndexGateway:
    """Writes chunk vectors and runs queries scoped to one document."""

    def __init__(self, store: VectorStore, config: RetrievalConfig | None = None) -> None:
        self.store = store
        self.config = config or RetrievalConfig()

    async def upsert(
        self,
        document_id: str,
        chunks: list[DocumentChunk],
        vectors: list[list[float]],
        file_name: str,
    ) -> int:
        """Store one record per chunk in sequential batches.

        A failing batch aborts the rest; batches written before it stay
        committed.
        """

        if not chunks:
            raise ValidationError("No chunks provided for storage")
        if not vectors:
            raise ValidationError("No vectors provided for storage")
        if len(chunks) != len(vectors):
            raise ValidationError("Number of chunks and vectors must match")

        records = [
            build_vector_record(document_id, chunk, vector, file_name)
            for chunk, vector in zip(chunks, vectors, strict=True)
        ]

        batch_size = self.config.upsert_batch_size
        for offset in range(0, len(records), batch_size):
            batch = records[offset : offset + batch_size]
            try:
                await asyncio.to_thread(self.store.upsert, batch)
            except PdfQaError:
                raise
            except Exception as exc:
                logger.exception("Error storing vectors for %s (batch at %d)", document_id, offset)
                raise ProviderError("Failed to store vectors", detail=str(exc)) from exc
        return len(records)

    async def query(
        self,
        document_id: str,
        vector: list[float],
        top_k: int | None = None,
    ) -> list[VectorMatch]:
        if not vector:
            raise ValidationError("Query vector is required")

        try:
            return await asyncio.to_thread(
                self.store.query,
                vector,
                top_k or self.config.top_k,
                {"documentId": {"$eq": document_id}},
            )
        except PdfQaError:
            raise
        except Exception as exc:
            logger.exception("Error searching vectors for %s", document_id)
            raise ProviderError("Failed to search vectors", detail=str(exc)) from exc


def build_vector_record(
    document_id: str, chunk: DocumentChunk, vector: list[float], file_name: str
) -> VectorRecord:
    metadata: dict[str, Any] = {
        "documentId": document_id,
        "fileName": file_name,
        "text": chunk.text,
        "chunkIndex": chunk.chunk_index,
    }
    # Pinecone rejects null metadata values.
    if chunk.page_number is not None:
        metadata["pageNumber"] = chunk.page_number
    return VectorRecord(
        id=f"{document_id}-chunk-{chunk.chunk_index}",
        values=vector,
        metadata=metadata,
    )


def _metadata_match(
    metadata: dict[str, Any], metadata_filter: dict[str, Any] | None
) -> bool:
    if not metadata_filter:
        return True
    for key, condition in metadata_filter.items():
        expected = condition.get("$eq") if isinstance(condition, dict) else condition
        if metadata.get(key) != expected:
            return False
    return True


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
