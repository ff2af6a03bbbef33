"""Bulk ingestion and one-shot seeding."""

from catalog_search.ingestion.batching import DEFAULT_BATCH_SIZE, chunked
from catalog_search.ingestion.seeding import (
    CollectionSeed,
    SeedingOrchestrator,
    SeedReport,
    SeedState,
)
from catalog_search.ingestion.sources import (
    JSONArrayReader,
    ManualChunkSeed,
    ProductSeed,
    SeedModel,
    read_manual_chunks,
    read_products,
    read_seed_file,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "CollectionSeed",
    "JSONArrayReader",
    "ManualChunkSeed",
    "ProductSeed",
    "SeedModel",
    "SeedReport",
    "SeedState",
    "SeedingOrchestrator",
    "chunked",
    "read_manual_chunks",
    "read_products",
    "read_seed_file",
]
