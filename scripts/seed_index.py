#!/usr/bin/env python
"""Seed the vector index from bulk import files.

Usage:
    python -m scripts.seed_index --data-dir seeddata/

Collections that already exist are left untouched.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from catalog_search.bootstrap import ensure_seed_data_imported
from catalog_search.config import get_settings
from catalog_search.embeddings.service import HTTPEmbeddingService
from catalog_search.exceptions import CatalogSearchError
from catalog_search.logging_config import get_logger, setup_logging
from catalog_search.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)


async def run_seed(data_dir: Path | None) -> bool:
    """Run seeding and return whether it succeeded."""
    settings = get_settings()
    setup_logging(level=settings.log_level)

    vector_store = QdrantVectorStore(settings=settings.qdrant)
    embedding_service = HTTPEmbeddingService(settings=settings.embedding)

    try:
        reports = await ensure_seed_data_imported(
            vector_store=vector_store,
            embedding_service=embedding_service,
            data_dir=data_dir,
            settings=settings,
        )
    except CatalogSearchError as e:
        logger.error(
            f"Seeding failed: {e.message}",
            extra={"code": e.code.value, "details": e.details},
        )
        return False
    finally:
        await embedding_service.close()
        await vector_store.close()

    print("\n" + "=" * 60)
    print("SEED SUMMARY")
    print("=" * 60)
    if not reports:
        print("No import directory configured; nothing seeded.")
    for report in reports:
        status = "skipped (exists)" if report.skipped else f"{report.records} records"
        print(f"{report.collection}: {status} in {report.batches} batches")
    print("=" * 60)
    return True


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed vector collections from bulk import files",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding products.json and manual-chunks.json "
        "(defaults to SEED_IMPORT_DATA_DIR)",
    )

    args = parser.parse_args()

    succeeded = asyncio.run(run_seed(args.data_dir))
    sys.exit(0 if succeeded else 1)


if __name__ == "__main__":
    main()
