"""PDF question answering over retrieval-augmented generation."""

from .config import ChunkingConfig, IngestConfig, QueryConfig, RetrievalConfig

__all__ = ["ChunkingConfig", "IngestConfig", "QueryConfig", "RetrievalConfig"]
