"""FastAPI entrypoint for upload, document lookup and query endpoints."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import BackgroundTasks, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pdf_qa.api.schemas import UUID_PATTERN, QueryRequest
from pdf_qa.config import (
    ChunkingConfig,
    IngestConfig,
    QueryConfig,
    RetrievalConfig,
    Settings,
    get_settings,
)
from pdf_qa.documents import DocumentRegistry, InMemoryDocumentRegistry
from pdf_qa.errors import NotFoundError, PdfQaError, ValidationError
from pdf_qa.ingest.chunker import CharacterWindowChunker
from pdf_qa.ingest.embedder import EmbeddingGateway, openai_embeddings_factory
from pdf_qa.ingest.parser import ParserRegistry
from pdf_qa.ingest.pipeline import DocumentIngestionService, IngestPipeline
from pdf_qa.logging_config import configure_logging
from pdf_qa.qa.generator import AnswerGenerator
from pdf_qa.qa.llm import ChatModelProvider, openai_chat_factory
from pdf_qa.qa.orchestrator import QueryOrchestrator, QueryService
from pdf_qa.qa.rewriter import QueryRewriter
from pdf_qa.retrieval.retriever import Retriever
from pdf_qa.retrieval.vector_store import (
    InMemoryVectorStore,
    PineconeVectorStore,
    VectorIndexGateway,
    VectorStore,
)

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(UUID_PATTERN)
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_UPLOAD_READ_SIZE = 1024 * 1024


@dataclass(slots=True)
class Services:
    settings: Settings
    registry: DocumentRegistry
    ingestion: DocumentIngestionService
    queries: QueryService
    llm: ChatModelProvider
    ingest_config: IngestConfig


def build_services(
    settings: Settings | None = None,
    *,
    registry: DocumentRegistry | None = None,
    embedder: EmbeddingGateway | None = None,
    llm: ChatModelProvider | None = None,
    vector_store: VectorStore | None = None,
    parser_registry: ParserRegistry | None = None,
    query_config: QueryConfig | None = None,
    ingest_config: IngestConfig | None = None,
) -> Services:
    """Wire the pipelines; every provider handle is created lazily."""

    settings = settings or get_settings()
    registry = registry or InMemoryDocumentRegistry()
    embedder = embedder or EmbeddingGateway(openai_embeddings_factory(settings))
    llm = llm or ChatModelProvider(openai_chat_factory(settings))
    if vector_store is None:
        vector_store = (
            InMemoryVectorStore()
            if settings.vector_backend == "memory"
            else PineconeVectorStore(settings)
        )
    ingest_config = ingest_config or settings.ingest_config()
    query_config = query_config or QueryConfig()

    retrieval_config = RetrievalConfig()
    index = VectorIndexGateway(vector_store, retrieval_config)
    pipeline = IngestPipeline(
        parser_registry or ParserRegistry(),
        CharacterWindowChunker(ChunkingConfig(chunk_size=1000, chunk_overlap=200)),
        embedder,
        index,
    )
    orchestrator = QueryOrchestrator(
        QueryRewriter(llm),
        Retriever(embedder, index, retrieval_config),
        AnswerGenerator(llm),
        query_config,
    )
    return Services(
        settings=settings,
        registry=registry,
        ingestion=DocumentIngestionService(pipeline, registry, ingest_config),
        queries=QueryService(orchestrator, registry, query_config),
        llm=llm,
        ingest_config=ingest_config,
    )


def create_app(services: Services | None = None) -> FastAPI:
    services = services or build_services()
    configure_logging(services.settings.log_level)

    app = FastAPI(title="PDF Q&A", version="0.1.0")
    app.state.services = services

    @app.exception_handler(PdfQaError)
    async def _service_error(request: Request, exc: PdfQaError) -> JSONResponse:
        logger.error(
            "%s %s failed: [%s] %s",
            request.method,
            request.url.path,
            exc.code,
            exc.message,
            exc_info=exc if exc.status_code >= 500 else None,
        )
        return _error_response(exc.status_code, exc.client_message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(_describe_validation_error(error) for error in exc.errors())
        logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
        return _error_response(400, message or "Invalid request", "VALIDATION_ERROR")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal Server Error", "INTERNAL_ERROR")

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "llm_configured": bool(services.settings.openai_api_key),
            "index_backend": services.settings.vector_backend,
            "documents": len(services.registry) if hasattr(services.registry, "__len__") else None,
        }

    @app.post("/api/documents/upload", status_code=201)
    async def upload_document(
        background_tasks: BackgroundTasks,
        file: UploadFile = File(...),
    ) -> dict[str, Any]:
        file_name = (file.filename or "").strip()
        if not file_name:
            raise ValidationError("Invalid file name", code="INVALID_FILE_NAME")
        if Path(file_name).suffix.lower() != ".pdf" or file.content_type != "application/pdf":
            raise ValidationError("Only PDF files are allowed", code="INVALID_FILE_TYPE")

        stored = await _store_upload(file, services.ingest_config)
        try:
            record = services.ingestion.accept(stored, file_name)
        except Exception:
            stored.unlink(missing_ok=True)
            raise

        background_tasks.add_task(
            services.ingestion.process, record.document_id, stored, file_name
        )
        return {
            "success": True,
            "documentId": record.document_id,
            "fileName": file_name,
            "message": "Document uploaded and processing started",
        }

    @app.get("/api/documents/{document_id}")
    def get_document(document_id: str) -> dict[str, Any]:
        if not _UUID_RE.match(document_id):
            raise ValidationError("Invalid document ID format")
        record = services.registry.get(document_id)
        if record is None:
            raise NotFoundError("Document not found")
        return {"success": True, "document": record.to_public_dict()}

    @app.post("/api/query")
    async def query(request: QueryRequest) -> dict[str, Any]:
        result = await services.queries.answer(
            request.document_id, request.question, request.turns()
        )
        return {"success": True, "answer": result.answer, "timestamp": result.timestamp}

    return app


async def _store_upload(file: UploadFile, config: IngestConfig) -> Path:
    upload_dir = Path(config.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", file.filename or "upload.pdf")
    target = upload_dir / f"{time.time_ns()}-{safe_name}"

    written = 0
    try:
        with target.open("wb") as handle:
            while chunk := await file.read(_UPLOAD_READ_SIZE):
                written += len(chunk)
                if written > config.max_file_size_bytes:
                    raise ValidationError(
                        "File size exceeds maximum allowed size of "
                        f"{config.max_file_size_bytes / (1024 * 1024):g}MB",
                        code="FILE_TOO_LARGE",
                    )
                handle.write(chunk)
        if written == 0:
            raise ValidationError("Uploaded file is empty", code="EMPTY_FILE")
    except Exception:
        target.unlink(missing_ok=True)
        raise
    return target


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
    )


def _describe_validation_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error.get('msg', 'invalid value')}" if location else str(error.get("msg"))


app = create_app()
