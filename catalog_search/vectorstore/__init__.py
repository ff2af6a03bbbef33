"""Vector store module."""

from catalog_search.vectorstore.models import (
    SearchFilter,
    SearchResult,
    VectorRecord,
)
from catalog_search.vectorstore.service import QdrantVectorStore, VectorStore

__all__ = [
    "QdrantVectorStore",
    "SearchFilter",
    "SearchResult",
    "VectorRecord",
    "VectorStore",
]
