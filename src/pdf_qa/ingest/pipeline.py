"""End-to-end ingest pipeline: parse -> chunk -> embed -> upsert."""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path

from pdf_qa.config import IngestConfig
from pdf_qa.documents import DocumentRegistry, transition
from pdf_qa.errors import ExtractionError, IngestionError, PdfQaError
from pdf_qa.ingest.chunker import CharacterWindowChunker
from pdf_qa.ingest.embedder import EmbeddingGateway
from pdf_qa.ingest.parser import ParserRegistry
from pdf_qa.retrieval.vector_store import VectorIndexGateway
from pdf_qa.types import DocumentRecord, DocumentStatus, IngestResult

logger = logging.getLogger(__name__)


class IngestPipeline:
    """Coordinates parser/chunker/embedder/vector index stages."""

    def __init__(
        self,
        parser_registry: ParserRegistry,
        chunker: CharacterWindowChunker,
        embedder: EmbeddingGateway,
        index: VectorIndexGateway,
    ) -> None:
        self._parser_registry = parser_registry
        self._chunker = chunker
        self._embedder = embedder
        self._index = index

    async def ingest_path(
        self,
        path: str | Path,
        *,
        document_id: str,
        file_name: str,
    ) -> IngestResult:
        """Ingest one source file; any stage failure aborts the rest.

        Raises:
            IngestionError: wrapping the originating error message.
        """

        try:
            return await self._run(Path(path), document_id=document_id, file_name=file_name)
        except PdfQaError as exc:
            logger.exception("Error processing document %s", document_id)
            raise IngestionError(
                f"Failed to process PDF document: {exc.client_message}", detail=exc.detail
            ) from exc
        except Exception as exc:
            logger.exception("Error processing document %s", document_id)
            raise IngestionError(
                "Failed to process PDF document: unexpected error", detail=str(exc)
            ) from exc

    async def _run(self, path: Path, *, document_id: str, file_name: str) -> IngestResult:
        size = await asyncio.to_thread(_readable_size, path)
        logger.info("Processing file: %s, Size: %d bytes", path, size)

        parsed = await asyncio.to_thread(
            self._parser_registry.parse_path, path, doc_id=document_id
        )
        if not parsed.text.strip():
            raise ExtractionError("Failed to extract text from PDF or PDF is empty")
        logger.info(
            "Loaded %d pages, extracted %d characters", parsed.page_count, len(parsed.text)
        )

        chunks = self._chunker.chunk_document(parsed)
        if not chunks:
            raise ExtractionError("No chunks created from document")
        logger.info("Created %d chunks", len(chunks))

        vectors = await self._embedder.embed_batch([chunk.text for chunk in chunks])
        logger.info("Generated %d embeddings", len(vectors))

        await self._index.upsert(document_id, chunks, vectors, file_name)
        logger.info("Document %s stored in vector index", document_id)

        return IngestResult(
            success=True,
            page_count=parsed.page_count,
            chunk_count=len(chunks),
            document_id=document_id,
        )


class DocumentIngestionService:
    """Owns the document lifecycle from upload acceptance to terminal status.

    `accept` runs inside the upload request and returns at once. `process`
    runs detached from the request and is the only writer of the record until
    it reaches `ready` or `failed`.
    """

    def __init__(
        self,
        pipeline: IngestPipeline,
        registry: DocumentRegistry,
        config: IngestConfig | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.registry = registry
        self.config = config or IngestConfig()
        self._slots = asyncio.Semaphore(self.config.max_concurrent_ingestions)

    def accept(self, file_path: str | Path, file_name: str) -> DocumentRecord:
        record = DocumentRecord(
            document_id=str(uuid.uuid4()),
            file_name=file_name,
            status=DocumentStatus.PROCESSING,
            file_size=Path(file_path).stat().st_size,
        )
        self.registry.set(record)
        logger.info("Accepted upload %s as document %s", file_name, record.document_id)
        return record

    async def process(self, document_id: str, file_path: str | Path, file_name: str) -> None:
        """Run ingestion and record the outcome; never raises."""
        try:
            async with self._slots:
                result = await self.pipeline.ingest_path(
                    file_path, document_id=document_id, file_name=file_name
                )
        except PdfQaError as exc:
            logger.error("Document processing failed: %s - %s", document_id, exc)
            self._record(document_id, DocumentStatus.FAILED, error=exc.client_message)
        except Exception as exc:
            logger.error("Document processing failed: %s", document_id, exc_info=True)
            self._record(
                document_id,
                DocumentStatus.FAILED,
                error=f"Failed to process PDF document: {type(exc).__name__}",
            )
        else:
            self._record(
                document_id,
                DocumentStatus.READY,
                page_count=result.page_count,
                chunk_count=result.chunk_count,
            )
            logger.info(
                "Document %s ready: %d pages, %d chunks",
                document_id,
                result.page_count,
                result.chunk_count,
            )
        finally:
            await asyncio.to_thread(_remove_quietly, Path(file_path))

    def _record(self, document_id: str, status: DocumentStatus, **fields: object) -> None:
        try:
            transition(self.registry, document_id, status, **fields)
        except PdfQaError as exc:
            logger.error("Could not record status for %s: %s", document_id, exc)


def _readable_size(path: Path) -> int:
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ExtractionError(f"File not found at path: {path}")
    return path.stat().st_size


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError as exc:
        logger.warning("Failed to delete temporary file %s: %s", path, exc)
