"""Prometheus metrics for the retrieval and seeding pipeline.

Provides metrics instrumentation for:
- Embedding request latency
- Vector store operation latency
- Retrieval hits and scores
- Seeding progress per collection
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)

# Vector Store Metrics
VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store operation duration",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

# Retrieval Metrics
RETRIEVAL_HITS_RETURNED = Histogram(
    "retrieval_hits_returned",
    "Number of hits returned per retrieval",
    ["collection"],
    buckets=[0, 1, 2, 3, 5, 10],
)

RETRIEVAL_TOP_SCORE = Histogram(
    "retrieval_top_score",
    "Highest relevance score per retrieval",
    ["collection"],
    buckets=[0.5, 0.6, 0.7, 0.8, 0.85, 0.9, 0.95, 1.0],
)

# Seeding Metrics
SEED_RECORDS_TOTAL = Counter(
    "seed_records_total",
    "Records upserted during seeding",
    ["collection"],
)

SEED_BATCHES_TOTAL = Counter(
    "seed_batches_total",
    "Batches upserted during seeding",
    ["collection"],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_vectorstore_operation(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track a single vector store round-trip."""
    status = "success" if success else "error"
    VECTORSTORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
        duration
    )


def track_retrieval_request(
    collection: str,
    hits_returned: int,
    top_score: float,
) -> None:
    """Track retrieval request metrics.

    Args:
        collection: Collection that was searched.
        hits_returned: Number of hits returned.
        top_score: Highest relevance score.
    """
    RETRIEVAL_HITS_RETURNED.labels(collection=collection).observe(hits_returned)
    if top_score > 0:
        RETRIEVAL_TOP_SCORE.labels(collection=collection).observe(top_score)


def track_seed_batch(collection: str, records: int) -> None:
    """Track one flushed seeding batch."""
    SEED_BATCHES_TOTAL.labels(collection=collection).inc()
    SEED_RECORDS_TOTAL.labels(collection=collection).inc(records)
