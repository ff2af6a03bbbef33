"""Semantic retrievers over the product and manual collections."""

import asyncio
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from catalog_search.config import RetrievalSettings, get_settings
from catalog_search.embeddings.service import EmbeddingService
from catalog_search.exceptions import StoreUnavailableError, VectorStoreError
from catalog_search.logging_config import get_logger
from catalog_search.observability.metrics import track_retrieval_request
from catalog_search.retrieval.models import ManualChunkResult, ProductResult
from catalog_search.vectorstore.models import (
    PAGE_TAG,
    PRODUCT_TAG,
    SearchFilter,
    SearchResult,
    decode_tag,
)
from catalog_search.vectorstore.service import VectorStore

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")


def _tag_int(tag: str, key: str) -> int | None:
    value = decode_tag(tag, key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class SemanticRetriever(ABC, Generic[ResultT]):
    """Embeds a query, searches one collection and maps hits to results.

    Stateless apart from its collaborators, so one instance can serve any
    number of concurrent queries. Failures are not retried: a failed
    search raises, while a search with no relevant hits returns ``[]``.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        collection: str,
        limit: int,
        score_threshold: float = 0.6,
        timeout: float | None = None,
    ) -> None:
        """Initialize the semantic retriever.

        Args:
            embedding_service: Service for generating embeddings.
            vector_store: Vector database for similarity search.
            collection: Name of the collection to search.
            limit: Maximum hits per query.
            score_threshold: Minimum score to include in results.
            timeout: Seconds allowed for the store search, or None.
        """
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._collection = collection
        self._limit = limit
        self._score_threshold = score_threshold
        self._timeout = timeout

    @property
    def collection(self) -> str:
        return self._collection

    @abstractmethod
    def _to_result(self, hit: SearchResult) -> ResultT:
        """Map a raw hit to the domain result."""
        ...

    async def query(
        self,
        text: str,
        scope: int | str | None = None,
    ) -> list[ResultT]:
        """Retrieve the most relevant records for ``text``.

        Args:
            text: Free-text query.
            scope: Product id restricting the search, or None for all.

        Returns:
            Results ordered by descending score; empty when nothing passes
            the relevance threshold.

        Raises:
            EmbeddingUnavailableError: If the query cannot be embedded.
            CollectionNotFoundError: If the collection has not been seeded.
            StoreUnavailableError: On store failure or timeout.
        """
        if not text.strip():
            return []

        embedding_result = await self._embedding_service.embed(text)
        search_filter = SearchFilter.for_product(scope) if scope is not None else None

        search = self._vector_store.search(
            collection=self._collection,
            vector=embedding_result.embedding,
            filter=search_filter,
            score_threshold=self._score_threshold,
            limit=self._limit,
        )
        try:
            hits = await asyncio.wait_for(search, timeout=self._timeout)
        except TimeoutError as e:
            raise StoreUnavailableError(
                f"Search in {self._collection} timed out after {self._timeout}s",
                details={"collection": self._collection, "timeout": self._timeout},
            ) from e

        results = [self._to_result(hit) for hit in hits]

        track_retrieval_request(
            self._collection,
            len(results),
            hits[0].score if hits else 0.0,
        )
        logger.debug(
            f"Retrieved {len(results)} results for query",
            extra={
                "collection": self._collection,
                "query_length": len(text),
                "scoped": scope is not None,
                "results_count": len(results),
            },
        )
        return results


class ProductSearch(SemanticRetriever[ProductResult]):
    """Finds catalog products whose model name matches a query."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        settings: RetrievalSettings | None = None,
        collection: str | None = None,
    ) -> None:
        settings = settings or get_settings().retrieval
        super().__init__(
            embedding_service=embedding_service,
            vector_store=vector_store,
            collection=collection or get_settings().qdrant.products_collection,
            limit=settings.product_limit,
            score_threshold=settings.score_threshold,
            timeout=settings.search_timeout,
        )

    def _to_result(self, hit: SearchResult) -> ProductResult:
        try:
            product_id = int(hit.id)
        except ValueError as e:
            raise VectorStoreError(
                f"Product record has a non-numeric id: {hit.id!r}",
                details={"collection": self._collection, "record_id": hit.id},
            ) from e

        return ProductResult(
            product_id=product_id,
            brand=hit.description,
            model=hit.text,
            score=hit.score,
        )


class ManualChunkSearch(SemanticRetriever[ManualChunkResult]):
    """Finds product manual passages, optionally for a single product."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        settings: RetrievalSettings | None = None,
        collection: str | None = None,
    ) -> None:
        settings = settings or get_settings().retrieval
        super().__init__(
            embedding_service=embedding_service,
            vector_store=vector_store,
            collection=collection or get_settings().qdrant.manuals_collection,
            limit=settings.manual_limit,
            score_threshold=settings.score_threshold,
            timeout=settings.search_timeout,
        )

    def _to_result(self, hit: SearchResult) -> ManualChunkResult:
        return ManualChunkResult(
            chunk_id=hit.id,
            product_id=_tag_int(hit.external_source_name, PRODUCT_TAG),
            page_number=_tag_int(hit.additional_metadata, PAGE_TAG),
            text=hit.text,
            score=hit.score,
        )
