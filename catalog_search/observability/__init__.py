"""Observability module for metrics and monitoring."""

from catalog_search.observability.metrics import (
    get_metrics,
    get_metrics_content_type,
    track_embedding_request,
    track_retrieval_request,
    track_seed_batch,
    track_vectorstore_operation,
)

__all__ = [
    "get_metrics",
    "get_metrics_content_type",
    "track_embedding_request",
    "track_retrieval_request",
    "track_seed_batch",
    "track_vectorstore_operation",
]
