"""Decay marker: flags satellites listed in the CelesTrak decayed SATCAT."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import httpx

from catalog_sync.batch_writer import write_chunked
from catalog_sync.celestrak import fetch_decayed_norad_ids
from catalog_sync.config import Settings
from catalog_sync.errors import BatchWriteError
from catalog_sync.models import SATELLITES_TABLE, DecaySummary, SatelliteStatus
from catalog_sync.report import format_duration
from catalog_sync.store import CatalogStore, Filter

logger = logging.getLogger(__name__)


async def mark_decayed(
    store: CatalogStore,
    norad_ids: list[int],
    chunk_size: int = 100,
) -> int:
    """Set ``status=decayed`` on matching satellites not already decayed.

    Returns how many rows actually changed. Re-running is a no-op.
    """
    updated = 0
    patch = {
        "status": SatelliteStatus.DECAYED.value,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    async def update_chunk(chunk: list[int]) -> None:
        nonlocal updated
        updated += await store.update(
            SATELLITES_TABLE,
            patch,
            (
                Filter.is_in("norad_id", chunk),
                Filter.neq("status", SatelliteStatus.DECAYED.value),
            ),
        )

    try:
        await write_chunked(update_chunk, norad_ids, chunk_size, name="decay_update")
    except BatchWriteError as exc:
        exc.rows_written = updated
        raise
    return updated


async def run_decay_sync(
    store: CatalogStore,
    client: httpx.AsyncClient,
    settings: Settings,
) -> DecaySummary:
    started = time.perf_counter()

    norad_ids = await fetch_decayed_norad_ids(client, settings)
    if not norad_ids:
        return DecaySummary(
            message="No decayed satellites to update.",
            duration=format_duration((time.perf_counter() - started) * 1000),
        )

    try:
        updated = await mark_decayed(store, norad_ids, settings.decay_chunk_size)
    except BatchWriteError as exc:
        return DecaySummary(
            success=False,
            found=len(norad_ids),
            updated=exc.rows_written,
            duration=format_duration((time.perf_counter() - started) * 1000),
            error=str(exc),
        )

    logger.info("Successfully updated %d satellites", updated)
    return DecaySummary(
        found=len(norad_ids),
        updated=updated,
        duration=format_duration((time.perf_counter() - started) * 1000),
    )
