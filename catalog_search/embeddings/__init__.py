"""Embedding service module."""

from catalog_search.embeddings.models import EmbeddingResult
from catalog_search.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
]
