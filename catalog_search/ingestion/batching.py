"""Fixed-size batching over lazily produced records."""

from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import TypeVar

from catalog_search.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 1000


async def _aiter(source: AsyncIterable[T] | Iterable[T]) -> AsyncIterator[T]:
    if isinstance(source, AsyncIterable):
        async for item in source:
            yield item
    else:
        for item in source:
            yield item


async def chunked(
    source: AsyncIterable[T] | Iterable[T],
    size: int = DEFAULT_BATCH_SIZE,
) -> AsyncIterator[list[T]]:
    """Group a single-pass stream into lists of ``size`` items.

    Every batch holds exactly ``size`` items except possibly the last; an
    empty source yields nothing. Only the batch being filled is held in
    memory, and the source is not advanced past it until the consumer asks
    for the next one.

    Args:
        source: Sync or async iterable, consumed once.
        size: Maximum items per batch.

    Yields:
        Ordered batches whose concatenation equals the source.

    Raises:
        ValidationError: If ``size`` is less than 1.
    """
    if size < 1:
        raise ValidationError(
            f"Batch size must be positive, got {size}",
            details={"size": size},
        )

    batch: list[T] = []
    async for item in _aiter(source):
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []

    if batch:
        yield batch
