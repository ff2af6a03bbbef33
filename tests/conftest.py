"""Pytest configuration and shared fixtures."""

import math
import random
from collections.abc import AsyncGenerator

import pytest
from qdrant_client import AsyncQdrantClient

from catalog_search.config import QdrantSettings
from catalog_search.embeddings.models import EmbeddingResult
from catalog_search.embeddings.service import EmbeddingService
from catalog_search.exceptions import EmbeddingUnavailableError
from catalog_search.vectorstore.service import QdrantVectorStore

DIMENSIONS = 384


def one_hot(index: int, dimensions: int = DIMENSIONS) -> list[float]:
    """Unit vector along one axis."""
    vector = [0.0] * dimensions
    vector[index] = 1.0
    return vector


def blend(similarity: float, dimensions: int = DIMENSIONS) -> list[float]:
    """Unit vector whose cosine similarity with ``one_hot(0)`` is ``similarity``."""
    vector = [0.0] * dimensions
    vector[0] = similarity
    vector[1] = math.sqrt(1.0 - similarity**2)
    return vector


def random_vector(seed: int, dimensions: int = DIMENSIONS) -> list[float]:
    """Deterministic pseudo-random vector."""
    rng = random.Random(seed)
    return [rng.gauss(0.0, 1.0) for _ in range(dimensions)]


class StaticEmbeddingService(EmbeddingService):
    """Embedding service answering from a fixed text-to-vector table."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        dimensions: int = DIMENSIONS,
    ) -> None:
        self.vectors = vectors or {}
        self._dims = dimensions
        self.calls: list[list[str]] = []

    @property
    def model_name(self) -> str:
        return "static"

    @property
    def dimensions(self) -> int:
        return self._dims

    async def embed(self, text: str) -> EmbeddingResult:
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        self.calls.append(list(texts))
        results = []
        for text in texts:
            if text not in self.vectors:
                raise EmbeddingUnavailableError(f"No vector for {text!r}")
            vector = self.vectors[text]
            results.append(
                EmbeddingResult(
                    text=text,
                    embedding=vector,
                    model=self.model_name,
                )
            )
        return results


@pytest.fixture
async def memory_client() -> AsyncGenerator[AsyncQdrantClient, None]:
    """In-process Qdrant client.

    Yields:
        AsyncQdrantClient running in local in-memory mode.
    """
    client = AsyncQdrantClient(location=":memory:")
    yield client
    await client.close()


@pytest.fixture
def memory_store(memory_client: AsyncQdrantClient) -> QdrantVectorStore:
    """Vector store backed by the in-memory client."""
    return QdrantVectorStore(settings=QdrantSettings(), client=memory_client)
