"""Retrieval module."""

from catalog_search.retrieval.models import ManualChunkResult, ProductResult
from catalog_search.retrieval.retriever import (
    ManualChunkSearch,
    ProductSearch,
    SemanticRetriever,
)

__all__ = [
    "ManualChunkResult",
    "ManualChunkSearch",
    "ProductResult",
    "ProductSearch",
    "SemanticRetriever",
]
