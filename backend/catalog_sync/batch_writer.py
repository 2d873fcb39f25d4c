"""Chunked store writes and the end-of-run flush of pending writes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator, Sequence, TypeVar

from catalog_sync.errors import BatchWriteError
from catalog_sync.models import TLE_TABLE, TRANSMITTERS_TABLE, PendingWriteSet, WriteResult

if TYPE_CHECKING:
    from catalog_sync.store import CatalogStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChunkOperation = Callable[[list[Any]], Awaitable[Any]]


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


async def write_chunked(
    operation: ChunkOperation,
    rows: Sequence[Any],
    chunk_size: int = 100,
    name: str = "write",
) -> int:
    """Run ``operation`` over ``rows`` in sequential chunks.

    Returns the number of rows written. The first failing chunk stops the
    remaining chunks and raises BatchWriteError carrying its index and the
    rows already written.
    """
    written = 0
    for index, chunk in enumerate(chunked(rows, chunk_size)):
        try:
            await operation(chunk)
        except Exception as exc:
            logger.error("%s: chunk %d of %d rows failed: %s", name, index, len(chunk), exc)
            raise BatchWriteError(name, index, exc, rows_written=written) from exc
        written += len(chunk)
    return written


async def flush_pending(
    store: CatalogStore,
    pending: PendingWriteSet,
    chunk_size: int = 100,
) -> list[WriteResult]:
    """Flush every non-empty buffer once, in a fixed order.

    A failure in one operation is recorded and the next operation still runs.
    """
    operations: list[tuple[str, list[Any], ChunkOperation]] = [
        (
            "tle_upsert",
            pending.tle_upserts,
            lambda chunk: store.upsert(TLE_TABLE, chunk, on_conflict="satellite_id"),
        ),
        (
            "transmitter_insert",
            pending.transmitter_inserts,
            lambda chunk: store.insert(TRANSMITTERS_TABLE, chunk),
        ),
        (
            "transmitter_update",
            pending.transmitter_updates,
            lambda chunk: store.upsert(TRANSMITTERS_TABLE, chunk, on_conflict="id"),
        ),
        (
            "transmitter_delete",
            pending.transmitter_deletes,
            lambda chunk: store.delete(TRANSMITTERS_TABLE, chunk),
        ),
    ]

    results: list[WriteResult] = []
    for name, rows, operation in operations:
        if not rows:
            continue
        try:
            written = await write_chunked(operation, rows, chunk_size, name=name)
            results.append(WriteResult(operation=name, attempted=len(rows), written=written))
        except BatchWriteError as exc:
            results.append(WriteResult(
                operation=name,
                attempted=len(rows),
                written=exc.rows_written,
                error=str(exc),
            ))
        else:
            logger.info("%s: wrote %d rows", name, written)
    return results
