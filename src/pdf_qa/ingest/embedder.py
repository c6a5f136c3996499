"""Embedding gateway over an external embedding provider."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from langchain_core.embeddings import Embeddings

from pdf_qa.config import Settings, get_settings
from pdf_qa.errors import ConfigurationError, PdfQaError, ProviderError

logger = logging.getLogger(__name__)

EmbeddingsFactory = Callable[[], Embeddings]


def openai_embeddings_factory(settings: Settings | None = None) -> EmbeddingsFactory:
    """Return a factory building `OpenAIEmbeddings` from settings."""

    def _factory() -> Embeddings:
        resolved = settings or get_settings()
        if not resolved.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is not set")

        from langchain_openai import OpenAIEmbeddings

        return OpenAIEmbeddings(
            model=resolved.openai_embedding_model,
            api_key=resolved.openai_api_key,
        )

    return _factory


class EmbeddingGateway:
    """Converts text to vectors; no retries here, callers decide.

    The provider client is built on first use and shared for the lifetime of
    the gateway.
    """

    def __init__(self, client_factory: EmbeddingsFactory | None = None) -> None:
        self._client_factory = client_factory or openai_embeddings_factory()
        self._client: Embeddings | None = None
        self._lock = threading.Lock()

    @property
    def client(self) -> Embeddings:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._client_factory()
                    logger.info("Embedding client initialized: %s", type(self._client).__name__)
        return self._client

    async def embed(self, text: str) -> list[float]:
        client = self.client
        try:
            vector = await client.aembed_query(text)
        except PdfQaError:
            raise
        except Exception as exc:
            logger.exception("Error generating embedding")
            raise ProviderError("Failed to generate embedding", detail=str(exc)) from exc
        return list(vector)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        client = self.client
        try:
            vectors = await client.aembed_documents(texts)
        except PdfQaError:
            raise
        except Exception as exc:
            logger.exception("Error generating embeddings")
            raise ProviderError("Failed to generate embeddings", detail=str(exc)) from exc

        if len(vectors) != len(texts):
            raise ProviderError(
                "Failed to generate embeddings",
                detail=f"expected {len(texts)} vectors, got {len(vectors)}",
            )
        return [list(vector) for vector in vectors]
