"""Configuration models for the PDF question-answering service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkingConfig(BaseModel):
    """Configures fixed-size character windows with overlap."""

    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)


class RetrievalConfig(BaseModel):
    """Configures document-scoped retrieval and index writes."""

    top_k: int = Field(default=10, ge=1)
    upsert_batch_size: int = Field(default=100, ge=1, le=1000)


class QueryConfig(BaseModel):
    """Configures retry and latency bounds of the query pipeline."""

    max_retries: int = Field(default=1, ge=0)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class IngestConfig(BaseModel):
    """Configures upload acceptance and background ingestion."""

    max_concurrent_ingestions: int = Field(default=4, ge=1)
    upload_dir: str = "./uploads"
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)


class Settings(BaseSettings):
    """Provider credentials and runtime switches read from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    pinecone_api_key: str | None = None
    pinecone_index_name: str | None = None
    vector_backend: Literal["pinecone", "memory"] = "pinecone"

    # Environment source for IngestConfig; read through ingest_config().
    upload_dir: str = "./uploads"
    max_file_size: int = Field(default=10 * 1024 * 1024, ge=1)
    log_level: str = "INFO"

    def ingest_config(self) -> IngestConfig:
        return IngestConfig(upload_dir=self.upload_dir, max_file_size_bytes=self.max_file_size)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
