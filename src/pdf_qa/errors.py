"""Typed error taxonomy shared by the ingestion and query pipelines.

Every error carries a stable machine-readable ``code`` and the HTTP status the
API layer reports for it. Provider failures are converted into these types at
the gateway boundary, so callers never see raw SDK exceptions. Upstream text
goes into ``detail``; it is logged but never part of ``client_message``.
"""

from __future__ import annotations


class PdfQaError(Exception):
    """Base class for all service errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    public_message: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.summary = message
        self.detail = detail
        self.message = f"{message}: {detail}" if detail else message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    @property
    def client_message(self) -> str:
        """Text safe to return to API clients."""
        return self.public_message or self.summary


class ConfigurationError(PdfQaError):
    code = "CONFIGURATION_ERROR"
    status_code = 500
    public_message = "Service is not configured"


class ExtractionError(PdfQaError):
    code = "EXTRACTION_ERROR"
    status_code = 422


class EmptyDocumentError(ExtractionError):
    code = "EMPTY_DOCUMENT"


class IngestionError(PdfQaError):
    code = "INGESTION_FAILED"
    status_code = 500


class ProviderError(PdfQaError):
    """Upstream embedding, index or language-model failure."""

    code = "PROVIDER_ERROR"
    status_code = 502


class RetrievalError(ProviderError):
    code = "RETRIEVAL_FAILED"


class GenerationError(ProviderError):
    code = "GENERATION_FAILED"


class ValidationError(PdfQaError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(PdfQaError):
    code = "DOCUMENT_NOT_FOUND"
    status_code = 404


class DocumentNotReadyError(PdfQaError):
    code = "DOCUMENT_NOT_READY"
    status_code = 400


class QueryTimeoutError(PdfQaError):
    code = "QUERY_TIMEOUT"
    status_code = 504


class InvalidStatusTransition(PdfQaError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409
