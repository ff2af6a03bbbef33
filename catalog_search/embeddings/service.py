"""Text embedding backends."""

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from catalog_search.config import EmbeddingSettings, get_settings
from catalog_search.embeddings.models import EmbeddingResult
from catalog_search.exceptions import (
    EmbeddingError,
    EmbeddingUnavailableError,
    ErrorCode,
)
from catalog_search.logging_config import get_logger
from catalog_search.observability.metrics import track_embedding_request

logger = get_logger(__name__)


def _is_number_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(x, int | float) and not isinstance(x, bool) for x in value
    )


class EmbeddingService(ABC):
    """Turns text into fixed-length vectors.

    Seeding calls it for entries shipped without a vector; every query
    calls it once.
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Embed one text.

        Raises:
            EmbeddingUnavailableError: If the backend cannot be reached.
            EmbeddingError: If the backend answers with something unusable.
        """
        ...

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed several texts; results keep the input order."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Vector length produced by the model."""
        ...


class HTTPEmbeddingService(EmbeddingService):
    """Client for an OpenAI-compatible ``/embeddings`` endpoint.

    Works against text-embeddings-inference and hosted APIs alike. The
    first response fixes the vector length; any later vector of another
    length is rejected.
    """

    MODEL_DIMENSIONS = {
        "BAAI/bge-small-en-v1.5": 384,
        "sentence-transformers/all-MiniLM-L6-v2": 384,
        "BAAI/bge-base-en-v1.5": 768,
        "nomic-ai/nomic-embed-text-v1.5": 768,
    }

    DEFAULT_DIMENSIONS = 384

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Set up the service.

        Args:
            settings: Endpoint, model and batch size (default from settings).
            client: Shared HTTP client; one is created lazily otherwise.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None
        self._dimensions: int | None = None

    @property
    def _endpoint(self) -> str:
        return f"{self._settings.base_url.rstrip('/')}/embeddings"

    async def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Release the HTTP client when this service created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        return self._settings.model

    @property
    def dimensions(self) -> int:
        if self._dimensions is None:
            return self.MODEL_DIMENSIONS.get(self._settings.model, self.DEFAULT_DIMENSIONS)
        return self._dimensions

    async def embed(self, text: str) -> EmbeddingResult:
        (result,) = await self.embed_batch([text])
        return result

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed ``texts`` in requests of at most ``batch_size`` inputs.

        Raises:
            EmbeddingUnavailableError: If the backend cannot be reached.
            EmbeddingError: If a response cannot be used.
        """
        if not texts:
            return []

        client = await self._http()
        size = self._settings.batch_size
        results: list[EmbeddingResult] = []

        for offset in range(0, len(texts), size):
            chunk = texts[offset : offset + size]
            started = time.perf_counter()
            ok = False
            try:
                vectors = await self._request(client, chunk)
                ok = True
            finally:
                track_embedding_request(
                    self.model_name, time.perf_counter() - started, len(chunk), success=ok
                )
            try:
                results.extend(
                    EmbeddingResult(text=text, embedding=vector, model=self.model_name)
                    for text, vector in zip(chunk, vectors, strict=True)
                )
            except PydanticValidationError as e:
                raise EmbeddingError(
                    f"Unusable embedding from backend: {e.error_count()} errors",
                    details={"errors": e.errors(include_url=False)},
                ) from e

        return results

    async def _request(self, client: httpx.AsyncClient, texts: list[str]) -> list[list[float]]:
        """POST one chunk of texts and return their vectors."""
        try:
            response = await client.post(
                self._endpoint,
                json={"input": texts, "model": self._settings.model},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(
                f"Embedding backend answered {status}",
                extra={"endpoint": self._endpoint, "status": status},
            )
            raise EmbeddingUnavailableError(
                f"Embedding backend returned HTTP {status}",
                details={"status_code": status},
            ) from e
        except httpx.RequestError as e:
            logger.error(
                f"Embedding backend unreachable: {e}",
                extra={"endpoint": self._endpoint},
            )
            raise EmbeddingUnavailableError(
                f"Cannot reach embedding backend: {e}",
                details={"url": self._endpoint},
            ) from e

        try:
            items: list[Any] = response.json()["data"]
            vectors = [item["embedding"] for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Malformed embedding response: {e}",
                details={"error": str(e)},
            ) from e

        for index, vector in enumerate(vectors):
            if not _is_number_list(vector):
                raise EmbeddingError(
                    "Malformed embedding response: embedding is not a list of numbers",
                    details={"index": index, "received": repr(vector)[:100]},
                )

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Asked for {len(texts)} embeddings, received {len(vectors)}",
                details={"expected": len(texts), "received": len(vectors)},
            )

        for text, vector in zip(texts, vectors, strict=True):
            self._check_vector(text, vector)
        return vectors

    def _check_vector(self, text: str, vector: list[float]) -> None:
        if not vector:
            raise EmbeddingError(
                "Embedding backend returned an empty vector",
                details={"text": text[:100]},
            )
        if self._dimensions is None:
            self._dimensions = len(vector)
        elif len(vector) != self._dimensions:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self._dimensions}",
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={"expected": self._dimensions, "received": len(vector)},
            )
