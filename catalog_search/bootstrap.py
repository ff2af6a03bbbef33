"""Process start-up seeding of the product and manual collections."""

from pathlib import Path

from catalog_search.config import Settings, get_settings
from catalog_search.embeddings.service import EmbeddingService
from catalog_search.ingestion.seeding import CollectionSeed, SeedingOrchestrator, SeedReport
from catalog_search.ingestion.sources import read_manual_chunks, read_products
from catalog_search.logging_config import get_logger
from catalog_search.vectorstore.service import VectorStore

logger = get_logger(__name__)


def default_seeds(data_dir: Path, settings: Settings) -> list[CollectionSeed]:
    """Seeds for the products and manuals collections under ``data_dir``."""
    dimensions = settings.qdrant.vector_size
    return [
        CollectionSeed(
            collection=settings.qdrant.products_collection,
            dimensions=dimensions,
            open_source=lambda: read_products(data_dir),
        ),
        CollectionSeed(
            collection=settings.qdrant.manuals_collection,
            dimensions=dimensions,
            open_source=lambda: read_manual_chunks(data_dir),
        ),
    ]


async def ensure_seed_data_imported(
    vector_store: VectorStore,
    embedding_service: EmbeddingService,
    data_dir: Path | None = None,
    settings: Settings | None = None,
) -> list[SeedReport]:
    """Seed every collection that does not exist yet.

    Does nothing when no import directory is configured.

    Args:
        vector_store: Shared vector store.
        embedding_service: Embedder for entries without vectors.
        data_dir: Directory with the seed files (default from settings).
        settings: Application settings.

    Returns:
        One SeedReport per collection, or an empty list when skipped.
    """
    settings = settings or get_settings()
    data_dir = data_dir or settings.seed.import_data_dir

    if data_dir is None:
        logger.info("No seed import directory configured, skipping seeding")
        return []

    orchestrator = SeedingOrchestrator(
        vector_store=vector_store,
        embedding_service=embedding_service,
        settings=settings.seed,
    )
    reports = await orchestrator.seed_all(default_seeds(Path(data_dir), settings))

    for report in reports:
        logger.info(
            f"Collection {report.collection}: {report.state.value}",
            extra={
                "collection": report.collection,
                "skipped": report.skipped,
                "batches": report.batches,
                "records": report.records,
            },
        )
    return reports
