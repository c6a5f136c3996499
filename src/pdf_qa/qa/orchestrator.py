"""Query pipeline: rewrite -> retrieve -> generate, with bounded retry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from pdf_qa.config import QueryConfig
from pdf_qa.documents import DocumentRegistry
from pdf_qa.errors import (
    ConfigurationError,
    DocumentNotReadyError,
    NotFoundError,
    PdfQaError,
    ProviderError,
    QueryTimeoutError,
    RetrievalError,
    ValidationError,
)
from pdf_qa.qa.generator import AnswerGenerator
from pdf_qa.qa.rewriter import QueryRewriter
from pdf_qa.retrieval.retriever import Retriever
from pdf_qa.types import ConversationTurn, DocumentStatus, QueryResult, utc_timestamp

logger = logging.getLogger(__name__)

NO_CONTEXT_ANSWER = (
    "I couldn't find any relevant information in the document to answer your "
    "question. Could you please rephrase or ask something else?"
)

Sleep = Callable[[float], Awaitable[None]]


class QueryOrchestrator:
    """Sequences the query stages for one question.

    Retry policy: retrieval and generation are attempted up to
    `max_retries + 1` times with exponential backoff. Search, configuration
    and validation failures are raised on first occurrence.
    """

    def __init__(
        self,
        rewriter: QueryRewriter,
        retriever: Retriever,
        generator: AnswerGenerator,
        config: QueryConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.rewriter = rewriter
        self.retriever = retriever
        self.generator = generator
        self.config = config or QueryConfig()
        self._sleep = sleep

    async def process(
        self,
        document_id: str,
        question: str,
        history: Sequence[ConversationTurn],
    ) -> QueryResult:
        standalone = await self.rewriter.rewrite(question, history)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(multiplier=self.config.backoff_base_seconds),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        return await retrying(self._answer, document_id, standalone, history)

    async def _answer(
        self,
        document_id: str,
        query: str,
        history: Sequence[ConversationTurn],
    ) -> QueryResult:
        context = await self.retriever.retrieve(document_id, query)
        if not context.strip():
            return QueryResult(answer=NO_CONTEXT_ANSWER, timestamp=utc_timestamp())
        return await self.generator.generate(query, context, history)


class QueryService:
    """Status gate and request timeout in front of the orchestrator."""

    def __init__(
        self,
        orchestrator: QueryOrchestrator,
        registry: DocumentRegistry,
        config: QueryConfig | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.registry = registry
        self.config = config or QueryConfig()

    def ensure_ready(self, document_id: str) -> None:
        document = self.registry.get(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        if document.status is DocumentStatus.PROCESSING:
            raise DocumentNotReadyError(
                "Document is still being processed. Please try again in a moment.",
                code="DOCUMENT_PROCESSING",
            )
        if document.status is DocumentStatus.FAILED:
            raise DocumentNotReadyError(
                f"Document processing failed: {document.error or 'Unknown error'}. "
                "Please upload the document again.",
                code="DOCUMENT_FAILED",
            )

    async def answer(
        self,
        document_id: str,
        question: str,
        history: Sequence[ConversationTurn],
    ) -> QueryResult:
        self.ensure_ready(document_id)
        try:
            return await asyncio.wait_for(
                self.orchestrator.process(document_id, question, history),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "Query for document %s exceeded %.1fs", document_id, self.config.timeout_seconds
            )
            raise QueryTimeoutError(
                f"Query timed out after {self.config.timeout_seconds:g} seconds"
            ) from exc


def _is_retryable(exc: BaseException) -> bool:
    # Cancellation from the request timeout must propagate at once.
    if not isinstance(exc, Exception):
        return False
    if isinstance(exc, (ConfigurationError, ValidationError, RetrievalError)):
        return False
    if "search" in str(exc):
        return False
    return isinstance(exc, ProviderError) or not isinstance(exc, PdfQaError)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Error in query processing (attempt %d), retrying in %.1fs: %s",
        retry_state.attempt_number,
        delay,
        exc,
    )
