"""Tests for the seeding orchestrator."""

from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import DIMENSIONS, StaticEmbeddingService, one_hot, random_vector
from qdrant_client import AsyncQdrantClient

from catalog_search.config import QdrantSettings, SeedSettings
from catalog_search.exceptions import (
    DimensionMismatchError,
    EmbeddingUnavailableError,
    StoreUnavailableError,
)
from catalog_search.ingestion.seeding import (
    CollectionSeed,
    SeedingOrchestrator,
    SeedState,
)
from catalog_search.ingestion.sources import ManualChunkSeed, ProductSeed
from catalog_search.vectorstore.models import VectorRecord
from catalog_search.vectorstore.service import QdrantVectorStore


class RecordingStore(QdrantVectorStore):
    """In-memory store that remembers the size of every upsert."""

    def __init__(self, client: AsyncQdrantClient) -> None:
        super().__init__(settings=QdrantSettings(), client=client)
        self.upsert_sizes: list[int] = []

    async def upsert_batch(self, collection: str, records: Sequence[VectorRecord]) -> int:
        self.upsert_sizes.append(len(records))
        return await super().upsert_batch(collection, records)


def _chunks(count: int, dimensions: int = DIMENSIONS) -> list[ManualChunkSeed]:
    return [
        ManualChunkSeed(
            chunk_id=f"chunk-{i}",
            product_id=i % 10,
            page_number=i % 50 + 1,
            text=f"passage {i}",
            embedding=random_vector(i, dimensions),
        )
        for i in range(count)
    ]


def _seed(collection: str, open_source: Callable[[], Any]) -> CollectionSeed:
    return CollectionSeed(collection=collection, dimensions=DIMENSIONS, open_source=open_source)


async def _stream(
    items: list[ManualChunkSeed], consumed: list[str]
) -> AsyncIterator[ManualChunkSeed]:
    for item in items:
        consumed.append(item.chunk_id)
        yield item


class TestSeedingOrchestrator:
    """Tests for SeedingOrchestrator."""

    @pytest.mark.asyncio
    async def test_existing_collection_is_skipped(self) -> None:
        """No create, no upsert and no source read when the collection exists."""
        store = AsyncMock()
        store.list_collections = AsyncMock(return_value={"manuals"})
        open_source = MagicMock()

        orchestrator = SeedingOrchestrator(store, StaticEmbeddingService(), SeedSettings())
        report = await orchestrator.seed(_seed("manuals", open_source))

        assert report.skipped is True
        assert report.state == SeedState.SEEDED
        assert orchestrator.state("manuals") == SeedState.SEEDED
        open_source.assert_not_called()
        store.create_collection.assert_not_called()
        store.upsert_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_seed_2500_records(self, memory_client: AsyncQdrantClient) -> None:
        """2,500 records in batches of 1,000 make three upserts and are searchable."""
        store = RecordingStore(memory_client)
        items = _chunks(2500)
        orchestrator = SeedingOrchestrator(
            store, StaticEmbeddingService(), SeedSettings(batch_size=1000)
        )

        report = await orchestrator.seed(_seed("manuals", lambda: items))

        assert store.upsert_sizes == [1000, 1000, 500]
        assert report.batches == 3
        assert report.records == 2500
        assert report.state == SeedState.SEEDED
        assert orchestrator.state("manuals") == SeedState.SEEDED

        target = items[1234]
        hits = await store.search("manuals", target.embedding or [], limit=3)
        assert hits[0].id == "chunk-1234"
        assert hits[0].score == pytest.approx(1.0, abs=1e-4)
        assert hits[0].external_source_name == "productid:4"
        assert hits[0].additional_metadata == "pagenumber:35"

    @pytest.mark.asyncio
    async def test_missing_vectors_are_embedded_per_batch(
        self, memory_client: AsyncQdrantClient
    ) -> None:
        """Entries without a shipped vector are embedded one batch at a time."""
        store = RecordingStore(memory_client)
        embedder = StaticEmbeddingService(
            {"Alpha": one_hot(0), "Bravo": one_hot(1), "Charlie": one_hot(2)}
        )
        products = [
            ProductSeed(product_id=1, model="Alpha", brand="A"),
            ProductSeed(product_id=2, model="Bravo", brand="B", name_embedding=one_hot(9)),
            ProductSeed(product_id=3, model="Charlie", brand="C"),
        ]
        orchestrator = SeedingOrchestrator(store, embedder, SeedSettings(batch_size=2))

        await orchestrator.seed(_seed("products", lambda: products))

        assert embedder.calls == [["Alpha"], ["Charlie"]]
        assert store.upsert_sizes == [2, 1]
        hits = await store.search("products", one_hot(9))
        assert hits[0].id == "2"
        assert hits[0].description == "B"

    @pytest.mark.asyncio
    async def test_dimension_mismatch_aborts_run(self, memory_client: AsyncQdrantClient) -> None:
        """A bad record fails the run and stops reading the source."""
        store = RecordingStore(memory_client)
        items = _chunks(4) + _chunks(1, dimensions=8) + _chunks(6)
        consumed: list[str] = []
        orchestrator = SeedingOrchestrator(
            store, StaticEmbeddingService(), SeedSettings(batch_size=5)
        )

        with pytest.raises(DimensionMismatchError):
            await orchestrator.seed(
                CollectionSeed(
                    collection="manuals",
                    dimensions=DIMENSIONS,
                    open_source=lambda: _stream(items, consumed),
                )
            )

        assert len(consumed) == 5
        assert orchestrator.state("manuals") == SeedState.SEEDING
        assert await store.search("manuals", items[0].embedding or []) == []

    @pytest.mark.asyncio
    async def test_partial_seed_is_skipped_on_rerun(self, memory_client: AsyncQdrantClient) -> None:
        """A failed run leaves the collection behind and a rerun skips it."""
        store = RecordingStore(memory_client)
        embedder = StaticEmbeddingService()
        products = [ProductSeed(product_id=1, model="Unknown")]

        orchestrator = SeedingOrchestrator(store, embedder, SeedSettings())
        with pytest.raises(EmbeddingUnavailableError):
            await orchestrator.seed(_seed("products", lambda: products))

        rerun = await SeedingOrchestrator(store, embedder, SeedSettings()).seed(
            _seed("products", lambda: products)
        )

        assert rerun.skipped is True
        assert store.upsert_sizes == []

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_retries(self) -> None:
        """By default one failed batch fails the whole run."""
        store = AsyncMock()
        store.list_collections = AsyncMock(return_value=set())
        store.upsert_batch = AsyncMock(side_effect=StoreUnavailableError("down"))
        orchestrator = SeedingOrchestrator(store, StaticEmbeddingService(), SeedSettings())

        with pytest.raises(StoreUnavailableError):
            await orchestrator.seed(_seed("manuals", lambda: _chunks(2)))

        assert store.upsert_batch.call_count == 1

    @pytest.mark.asyncio
    async def test_store_failure_retried_when_enabled(self) -> None:
        """Opt-in retries recover from a transient store failure."""
        store = AsyncMock()
        store.list_collections = AsyncMock(return_value=set())
        store.upsert_batch = AsyncMock(side_effect=[StoreUnavailableError("blip"), 2])
        settings = SeedSettings(max_retries=2, retry_backoff=0.0)
        orchestrator = SeedingOrchestrator(store, StaticEmbeddingService(), settings)

        report = await orchestrator.seed(_seed("manuals", lambda: _chunks(2)))

        assert report.records == 2
        assert store.upsert_batch.call_count == 2

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_never_retried(self) -> None:
        """Only store unavailability is retried."""
        store = AsyncMock()
        store.list_collections = AsyncMock(return_value=set())
        store.upsert_batch = AsyncMock(side_effect=DimensionMismatchError("bad"))
        settings = SeedSettings(max_retries=3, retry_backoff=0.0)
        orchestrator = SeedingOrchestrator(store, StaticEmbeddingService(), settings)

        with pytest.raises(DimensionMismatchError):
            await orchestrator.seed(_seed("manuals", lambda: _chunks(2)))

        assert store.upsert_batch.call_count == 1

    @pytest.mark.asyncio
    async def test_seed_all(self, memory_client: AsyncQdrantClient) -> None:
        """Independent collections are seeded in one call."""
        store = RecordingStore(memory_client)
        await store.create_collection("products", dimensions=DIMENSIONS)
        orchestrator = SeedingOrchestrator(store, StaticEmbeddingService(), SeedSettings())

        reports = await orchestrator.seed_all(
            [
                _seed("products", MagicMock()),
                _seed("manuals", lambda: _chunks(3)),
            ]
        )

        assert [r.collection for r in reports] == ["products", "manuals"]
        assert reports[0].skipped is True
        assert reports[1].records == 3
        assert await store.list_collections() == {"products", "manuals"}
