"""Vector store interface and Qdrant implementation."""

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from uuid import NAMESPACE_URL, uuid5

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointStruct,
    VectorParams,
)

from catalog_search.config import QdrantSettings, get_settings
from catalog_search.exceptions import (
    CollectionAlreadyExistsError,
    CollectionNotFoundError,
    DimensionMismatchError,
    ErrorCode,
    StoreUnavailableError,
    VectorStoreError,
)
from catalog_search.logging_config import get_logger
from catalog_search.observability.metrics import track_vectorstore_operation
from catalog_search.vectorstore.models import (
    PAYLOAD_FIELDS,
    SearchFilter,
    SearchResult,
    VectorRecord,
)

logger = get_logger(__name__)

# Qdrant only accepts unsigned ints or UUIDs as point ids.
POINT_ID_NAMESPACE = uuid5(NAMESPACE_URL, "catalog-search/points")

FILTER_FIELD = "external_source_name"

_TRANSPORT_ERRORS = (
    ResponseHandlingException,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)
_UNAVAILABLE_STATUSES = {502, 503, 504}


def _is_unavailable(error: Exception) -> bool:
    if isinstance(error, UnexpectedResponse):
        return error.status_code in _UNAVAILABLE_STATUSES
    return isinstance(error, _TRANSPORT_ERRORS)


def point_id(record_id: str) -> str:
    """Deterministic Qdrant point id for a record id."""
    return str(uuid5(POINT_ID_NAMESPACE, record_id))


@asynccontextmanager
async def _tracked(operation: str) -> AsyncIterator[None]:
    start = time.perf_counter()
    success = False
    try:
        yield
        success = True
    finally:
        track_vectorstore_operation(operation, time.perf_counter() - start, success)


class VectorStore(ABC):
    """Abstract base class for vector stores.

    The single seam between the pipeline and a concrete search engine.
    """

    @abstractmethod
    async def list_collections(self) -> set[str]:
        """Return the names of all existing collections.

        Raises:
            StoreUnavailableError: On transport failure.
        """
        ...

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Check if a collection exists."""
        ...

    @abstractmethod
    async def create_collection(
        self,
        name: str,
        dimensions: int,
    ) -> None:
        """Create a new collection.

        Args:
            name: Collection name.
            dimensions: Vector dimensions shared by every record.

        Raises:
            CollectionAlreadyExistsError: If the collection exists.
            StoreUnavailableError: On transport failure.
        """
        ...

    @abstractmethod
    async def upsert_batch(
        self,
        collection: str,
        records: Sequence[VectorRecord],
    ) -> int:
        """Insert or overwrite records by id.

        Args:
            collection: Collection name.
            records: Records to upsert.

        Returns:
            Number of records upserted.

        Raises:
            DimensionMismatchError: If any vector has the wrong length;
                nothing is written in that case.
            CollectionNotFoundError: If the collection does not exist.
            StoreUnavailableError: On transport failure.
        """
        ...

    @abstractmethod
    async def search(
        self,
        collection: str,
        vector: list[float],
        filter: SearchFilter | None = None,
        score_threshold: float | None = None,
        limit: int = 10,
    ) -> list[SearchResult]:
        """Search for similar vectors.

        Args:
            collection: Collection name.
            vector: Query vector.
            filter: Optional equality constraint, applied before ranking.
            score_threshold: Minimum score of returned hits.
            limit: Maximum results to return.

        Returns:
            Hits ordered by descending score. Empty when nothing matches.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            StoreUnavailableError: On transport failure.
        """
        ...


class QdrantVectorStore(VectorStore):
    """Qdrant vector store implementation.

    Safe for concurrent use: the underlying client pools connections and
    the only local state is a cache of collection dimensions.
    """

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant vector store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing or in-memory mode).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None
        self._dimensions: dict[str, int] = {}

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def _translate_error(
        self,
        client: AsyncQdrantClient,
        error: Exception,
        collection: str,
        action: str,
        check_missing: bool = True,
    ) -> VectorStoreError:
        """Map a client exception onto the store error taxonomy.

        ``check_missing=False`` skips the not-found mapping, for calls such as
        create where a missing collection is the expected state.
        """
        details = {"collection": collection, "error": str(error)}

        if _is_unavailable(error):
            return StoreUnavailableError(
                f"Vector store unavailable while trying to {action}: {error}",
                details=details,
            )

        if not check_missing:
            return VectorStoreError(f"Failed to {action}: {error}", details=details)

        if isinstance(error, UnexpectedResponse) and error.status_code == 404:
            return CollectionNotFoundError(
                f"Collection not found: {collection}", details=details
            )

        # Local mode and some server versions report a missing collection
        # as a generic error, so ask the store directly.
        try:
            exists = await client.collection_exists(collection)
        except (*_TRANSPORT_ERRORS, UnexpectedResponse) as probe_error:
            logger.debug(
                "Collection probe failed",
                extra={"collection": collection, "error": str(probe_error)},
            )
            exists = True

        if not exists:
            return CollectionNotFoundError(
                f"Collection not found: {collection}", details=details
            )

        return VectorStoreError(
            f"Failed to {action}: {error}",
            code=ErrorCode.VECTOR_STORE_ERROR,
            details=details,
        )

    async def _collection_dimension(
        self,
        client: AsyncQdrantClient,
        collection: str,
    ) -> int:
        """Vector size of a collection, cached after the first lookup."""
        if collection in self._dimensions:
            return self._dimensions[collection]

        try:
            async with _tracked("get_collection"):
                info = await client.get_collection(collection)
        except Exception as e:
            raise await self._translate_error(
                client, e, collection, "read collection info"
            ) from e

        vectors = info.config.params.vectors
        if not isinstance(vectors, VectorParams):
            raise VectorStoreError(
                f"Collection {collection} uses named vectors, which are not supported",
                details={"collection": collection},
            )

        self._dimensions[collection] = vectors.size
        return vectors.size

    async def list_collections(self) -> set[str]:
        """List Qdrant collection names."""
        client = await self._get_client()
        try:
            async with _tracked("list_collections"):
                response = await client.get_collections()
        except Exception as e:
            if _is_unavailable(e):
                raise StoreUnavailableError(
                    f"Failed to list collections: {e}",
                    details={"error": str(e)},
                ) from e
            raise VectorStoreError(
                f"Failed to list collections: {e}",
                details={"error": str(e)},
            ) from e

        return {description.name for description in response.collections}

    async def collection_exists(self, name: str) -> bool:
        """Check if collection exists."""
        return name in await self.list_collections()

    async def create_collection(
        self,
        name: str,
        dimensions: int,
    ) -> None:
        """Create a new Qdrant collection with cosine distance."""
        client = await self._get_client()

        if await self.collection_exists(name):
            raise CollectionAlreadyExistsError(
                f"Collection already exists: {name}",
                details={"collection": name},
            )

        try:
            async with _tracked("create_collection"):
                await client.create_collection(
                    collection_name=name,
                    vectors_config=VectorParams(
                        size=dimensions,
                        distance=Distance.COSINE,
                    ),
                )
        except UnexpectedResponse as e:
            if e.status_code == 409:
                raise CollectionAlreadyExistsError(
                    f"Collection already exists: {name}",
                    details={"collection": name},
                ) from e
            raise await self._translate_error(
                client, e, name, "create collection", check_missing=False
            ) from e
        except Exception as e:
            raise await self._translate_error(
                client, e, name, "create collection", check_missing=False
            ) from e

        self._dimensions[name] = dimensions
        logger.info(f"Created collection: {name}", extra={"dimensions": dimensions})

    async def upsert_batch(
        self,
        collection: str,
        records: Sequence[VectorRecord],
    ) -> int:
        """Upsert records into collection."""
        if not records:
            return 0

        client = await self._get_client()
        dimensions = await self._collection_dimension(client, collection)

        # Validate the whole batch before sending anything.
        for record in records:
            if len(record.vector) != dimensions:
                raise DimensionMismatchError(
                    f"Record {record.id} has {len(record.vector)} dimensions, "
                    f"collection {collection} expects {dimensions}",
                    details={
                        "collection": collection,
                        "record_id": record.id,
                        "expected": dimensions,
                        "received": len(record.vector),
                    },
                )

        points = [
            PointStruct(
                id=point_id(record.id),
                vector=record.vector,
                payload=record.to_payload(),
            )
            for record in records
        ]

        try:
            async with _tracked("upsert"):
                await client.upsert(
                    collection_name=collection,
                    points=points,
                    wait=True,
                )
        except Exception as e:
            raise await self._translate_error(client, e, collection, "upsert records") from e

        logger.debug(
            f"Upserted {len(points)} records",
            extra={"collection": collection},
        )
        return len(points)

    async def search(
        self,
        collection: str,
        vector: list[float],
        filter: SearchFilter | None = None,
        score_threshold: float | None = None,
        limit: int = 10,
    ) -> list[SearchResult]:
        """Search for similar vectors."""
        client = await self._get_client()
        dimensions = await self._collection_dimension(client, collection)

        if len(vector) != dimensions:
            raise DimensionMismatchError(
                f"Query vector has {len(vector)} dimensions, "
                f"collection {collection} expects {dimensions}",
                details={
                    "collection": collection,
                    "expected": dimensions,
                    "received": len(vector),
                },
            )

        query_filter = None
        if filter is not None:
            query_filter = Filter(
                must=[
                    FieldCondition(
                        key=FILTER_FIELD,
                        match=MatchValue(value=filter.encode()),
                    )
                ]
            )

        try:
            async with _tracked("search"):
                response = await client.query_points(
                    collection_name=collection,
                    query=vector,
                    query_filter=query_filter,
                    score_threshold=score_threshold,
                    limit=limit,
                    with_payload=PAYLOAD_FIELDS,
                )
        except Exception as e:
            raise await self._translate_error(client, e, collection, "search") from e

        return [
            SearchResult.from_payload(
                score=point.score if point.score is not None else 0.0,
                payload=dict(point.payload) if point.payload else {},
                fallback_id=str(point.id),
            )
            for point in response.points
        ]
