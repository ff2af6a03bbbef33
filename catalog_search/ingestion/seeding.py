"""One-shot, collection-existence-based seeding of the vector index."""

import asyncio
from collections.abc import AsyncIterable, Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from catalog_search.config import SeedSettings, get_settings
from catalog_search.embeddings.service import EmbeddingService
from catalog_search.exceptions import StoreUnavailableError
from catalog_search.ingestion.batching import chunked
from catalog_search.ingestion.sources import SeedModel
from catalog_search.logging_config import get_logger
from catalog_search.observability.metrics import track_seed_batch
from catalog_search.vectorstore.models import VectorRecord
from catalog_search.vectorstore.service import VectorStore

logger = get_logger(__name__)


class SeedState(str, Enum):
    """Seeding state of a single collection."""

    UNSEEDED = "unseeded"
    SEEDING = "seeding"
    SEEDED = "seeded"


@dataclass(frozen=True)
class CollectionSeed:
    """What to seed into one collection.

    Attributes:
        collection: Target collection name.
        dimensions: Vector size the collection is created with.
        open_source: Returns a fresh single-pass stream of seed entries.
            Only called when the collection actually needs seeding.
    """

    collection: str
    dimensions: int
    open_source: Callable[[], AsyncIterable[SeedModel] | Iterable[SeedModel]]


@dataclass(frozen=True)
class SeedReport:
    """Outcome of seeding one collection."""

    collection: str
    state: SeedState
    batches: int = 0
    records: int = 0
    skipped: bool = False


class SeedingOrchestrator:
    """Creates and fills collections that do not exist yet.

    Idempotency rests on collection existence alone: a collection that
    exists is treated as fully seeded. The existence check and the create
    call are separate round-trips, so a run that dies between creating a
    collection and flushing its last batch leaves a partial index that
    later runs will skip. Delete the collection to force a reseed.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_service: EmbeddingService,
        settings: SeedSettings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            vector_store: Shared store the collections live in.
            embedding_service: Used for entries without a precomputed vector.
            settings: Batch size and retry policy.
        """
        self._vector_store = vector_store
        self._embedding_service = embedding_service
        self._settings = settings or get_settings().seed
        self._states: dict[str, SeedState] = {}

    def state(self, collection: str) -> SeedState:
        """Last known state of a collection in this process."""
        return self._states.get(collection, SeedState.UNSEEDED)

    async def seed(self, seed: CollectionSeed) -> SeedReport:
        """Seed one collection unless it already exists.

        Batches are upserted one after another; the source is never read
        more than one batch ahead of the store.

        Args:
            seed: Collection and source description.

        Returns:
            SeedReport for the collection.

        Raises:
            DimensionMismatchError: If a record does not fit the collection.
            StoreUnavailableError: If the store fails and retries run out.
            EmbeddingError: If a missing vector cannot be computed.
            SeedSourceError: If the seed file is missing or malformed.
        """
        name = seed.collection

        if name in await self._vector_store.list_collections():
            self._states[name] = SeedState.SEEDED
            logger.info(
                f"Collection {name} already exists, skipping seed",
                extra={"collection": name},
            )
            return SeedReport(collection=name, state=SeedState.SEEDED, skipped=True)

        await self._vector_store.create_collection(name, seed.dimensions)
        self._states[name] = SeedState.SEEDING
        logger.info(
            f"Seeding collection {name}",
            extra={"collection": name, "batch_size": self._settings.batch_size},
        )

        batches = 0
        records = 0
        try:
            async for batch in chunked(seed.open_source(), self._settings.batch_size):
                mapped = await self._to_records(batch)
                await self._upsert_with_retry(name, mapped)
                batches += 1
                records += len(mapped)
                track_seed_batch(name, len(mapped))
                logger.debug(
                    f"Flushed batch {batches} into {name}",
                    extra={"collection": name, "records": records},
                )
        except Exception:
            logger.error(
                f"Seeding {name} failed after {batches} batches; "
                "the collection exists but is incomplete",
                extra={"collection": name, "batches": batches, "records": records},
            )
            raise

        self._states[name] = SeedState.SEEDED
        logger.info(
            f"Seeded collection {name}",
            extra={"collection": name, "batches": batches, "records": records},
        )
        return SeedReport(
            collection=name,
            state=SeedState.SEEDED,
            batches=batches,
            records=records,
        )

    async def seed_all(self, seeds: Sequence[CollectionSeed]) -> list[SeedReport]:
        """Seed independent collections concurrently.

        Each collection is still a sequential pipeline. The first failure
        propagates once every pipeline has finished or failed.
        """
        results = await asyncio.gather(
            *(self.seed(seed) for seed in seeds),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)  # type: ignore[arg-type]

    async def _to_records(self, batch: list[SeedModel]) -> list[VectorRecord]:
        """Map seed entries to records, embedding those without a vector."""
        missing = [entry for entry in batch if entry.precomputed_vector() is None]
        computed: dict[int, list[float]] = {}
        if missing:
            results = await self._embedding_service.embed_batch(
                [entry.embedding_text() for entry in missing]
            )
            computed = {
                id(entry): result.embedding
                for entry, result in zip(missing, results, strict=True)
            }

        return [
            entry.to_record(entry.precomputed_vector() or computed[id(entry)])
            for entry in batch
        ]

    async def _upsert_with_retry(
        self,
        collection: str,
        records: list[VectorRecord],
    ) -> None:
        """Upsert one batch, retrying only store unavailability."""
        delay = self._settings.retry_backoff
        attempt = 0
        while True:
            try:
                await self._vector_store.upsert_batch(collection, records)
                return
            except StoreUnavailableError as e:
                if attempt >= self._settings.max_retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Upsert into {collection} failed, retrying in {delay:.2f}s",
                    extra={
                        "collection": collection,
                        "attempt": attempt,
                        "max_retries": self._settings.max_retries,
                        "error": str(e),
                    },
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._settings.retry_max_backoff)
