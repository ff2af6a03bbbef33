"""Environment-driven settings.

Every section reads its own prefixed variables (``QDRANT_URL``,
``SEED_BATCH_SIZE``, ...) and falls back to a local-development default.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment; selects the log format."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="http://localhost:8080",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="BAAI/bge-small-en-v1.5",
        description="Embedding model name",
    )
    batch_size: int = Field(
        default=32,
        description="Batch size for embedding requests",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    vector_size: int = Field(
        default=384,
        description="Dimension of every collection created by seeding",
    )
    products_collection: str = Field(
        default="products",
        description="Collection holding product name embeddings",
    )
    manuals_collection: str = Field(
        default="manuals",
        description="Collection holding product manual chunks",
    )


class SeedSettings(BaseSettings):
    """Bulk seeding configuration."""

    model_config = SettingsConfigDict(env_prefix="SEED_")

    import_data_dir: Path | None = Field(
        default=None,
        description="Directory holding products.json and manual-chunks.json",
    )
    batch_size: int = Field(
        default=1000,
        ge=1,
        description="Records per upsert request",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Retries per batch on store unavailability (0 fails the run)",
    )
    retry_backoff: float = Field(
        default=0.5,
        description="Initial retry delay in seconds",
    )
    retry_max_backoff: float = Field(
        default=8.0,
        description="Upper bound for the retry delay in seconds",
    )


class RetrievalSettings(BaseSettings):
    """Query path configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_")

    score_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum relevance score for a hit",
    )
    product_limit: int = Field(
        default=5,
        ge=1,
        description="Maximum product hits per query",
    )
    manual_limit: int = Field(
        default=3,
        ge=1,
        description="Maximum manual chunk hits per query",
    )
    search_timeout: float | None = Field(
        default=10.0,
        description="Per-query timeout in seconds (None disables it)",
    )


class Settings(BaseSettings):
    """Top-level settings, one attribute per section."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    seed: SeedSettings = Field(default_factory=SeedSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)


@lru_cache
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()
