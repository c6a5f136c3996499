"""Document-scoped retrieval that assembles the answer context."""

from __future__ import annotations

import logging

from pdf_qa.config import RetrievalConfig
from pdf_qa.errors import ConfigurationError, RetrievalError
from pdf_qa.ingest.embedder import EmbeddingGateway
from pdf_qa.retrieval.vector_store import VectorIndexGateway
from pdf_qa.types import VectorMatch

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


class Retriever:
    """Embeds a standalone question and fetches the closest chunks.

    Failures are not swallowed: every error from embedding or search surfaces
    as `RetrievalError`, which the orchestrator treats as non-retryable.
    """

    def __init__(
        self,
        embedder: EmbeddingGateway,
        index: VectorIndexGateway,
        config: RetrievalConfig | None = None,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.config = config or RetrievalConfig()

    async def search(
        self, document_id: str, query: str, top_k: int | None = None
    ) -> list[VectorMatch]:
        query_vector = await self.embedder.embed(query)
        return await self.index.query(document_id, query_vector, top_k or self.config.top_k)

    async def retrieve(self, document_id: str, query: str, top_k: int | None = None) -> str:
        """Return formatted context, or "" when the document has no match."""
        try:
            matches = await self.search(document_id, query, top_k)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Error searching documents for %s", document_id)
            raise RetrievalError("Failed to search documents", detail=str(exc)) from exc

        if not matches:
            logger.info("No matching chunks for document %s", document_id)
            return ""
        return format_context(matches)


def format_context(matches: list[VectorMatch]) -> str:
    blocks: list[str] = []
    for position, match in enumerate(matches, start=1):
        text = str(match.metadata.get("text", ""))
        score = f"{match.score:.4f}" if match.score is not None else "N/A"
        blocks.append(f"[Chunk {position}, Relevance: {score}]\n{text}")
    return CONTEXT_SEPARATOR.join(blocks)
