"""TLE + transmitter sync orchestrator.

One run:
1. load the roster and a bulk snapshot of stored TLE/transmitter rows,
2. drain the roster through a pull-based pool of per-satellite pipelines
   (both feeds fetched concurrently, then diffed against the snapshot),
3. flush the accumulated writes in chunks,
4. fold the outcomes into a single summary.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import httpx

from catalog_sync.batch_writer import flush_pending
from catalog_sync.celestrak import fetch_tle
from catalog_sync.config import Settings
from catalog_sync.errors import ParseError
from catalog_sync.models import (
    PendingWriteSet,
    RunOutcome,
    Satellite,
    SyncSummary,
    TLERecord,
    TransmitterRecord,
)
from catalog_sync.orbital_math import epoch_to_datetime
from catalog_sync.reconcile import diff_tle, diff_transmitters
from catalog_sync.report import summarize
from catalog_sync.satnogs import fetch_transmitters
from catalog_sync.store import CatalogStore, load_roster, load_tles, load_transmitters

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class CatalogSnapshot:
    """Stored state for the whole roster, loaded once before the pool starts."""

    tles: dict[Any, TLERecord] = field(default_factory=dict)
    transmitters: dict[Any, list[TransmitterRecord]] = field(default_factory=dict)


async def run_pool(
    items: Sequence[T],
    handler: Callable[[T], Awaitable[R]],
    concurrency: int,
) -> list[R]:
    """Run ``handler`` over ``items`` with at most ``concurrency`` in flight.

    Workers pull the next item as soon as they finish one, so a slow item
    only holds its own slot. Results come back in completion order.
    """
    queue: asyncio.Queue[T] = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)

    results: list[R] = []

    async def worker() -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            results.append(await handler(item))

    workers = min(concurrency, len(items))
    await asyncio.gather(*(worker() for _ in range(workers)))
    return results


def _log_epoch_age(name: str, epoch: str) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    try:
        epoch_at = epoch_to_datetime(epoch)
    except ParseError as exc:
        logger.debug("New element set for %s, epoch age unknown: %s", name, exc)
        return
    age_days = (datetime.now(timezone.utc) - epoch_at).total_seconds() / 86400
    logger.debug("New element set for %s, epoch %s (%.1f days old)", name, epoch, age_days)


def _record_failure(outcome: RunOutcome, feed: str, exc: BaseException) -> None:
    outcome.success = False
    outcome.errors.append(f"{feed}: {exc}")
    logger.info("%s error for %s: %s", feed, outcome.name, exc)


async def process_satellite(
    satellite: Satellite,
    client: httpx.AsyncClient,
    settings: Settings,
    snapshot: CatalogSnapshot,
    pending: PendingWriteSet,
    now_iso: str,
) -> RunOutcome:
    """Fetch, diff and buffer writes for one satellite. Never raises."""
    outcome = RunOutcome(norad_id=satellite.norad_id, name=satellite.label)
    started = time.perf_counter()
    try:
        tle_result, transmitter_result = await asyncio.gather(
            fetch_tle(client, satellite.norad_id, settings),
            fetch_transmitters(client, satellite.norad_id, settings),
            return_exceptions=True,
        )

        if isinstance(tle_result, Exception):
            _record_failure(outcome, "TLE", tle_result)
        elif isinstance(tle_result, BaseException):
            raise tle_result
        elif tle_result is None:
            logger.info("No TLE data found for %s", outcome.name)
        else:
            row = diff_tle(satellite.id, tle_result, snapshot.tles.get(satellite.id), now_iso)
            if row is not None:
                pending.tle_upserts.append(row)
                outcome.tle_changed = True
                _log_epoch_age(outcome.name, tle_result.epoch)

        if isinstance(transmitter_result, Exception):
            _record_failure(outcome, "Transmitters", transmitter_result)
        elif isinstance(transmitter_result, BaseException):
            raise transmitter_result
        else:
            diff = diff_transmitters(
                satellite.id,
                transmitter_result,
                snapshot.transmitters.get(satellite.id, []),
                now_iso,
            )
            pending.transmitter_inserts.extend(diff.inserts)
            pending.transmitter_updates.extend(diff.updates)
            pending.transmitter_deletes.extend(diff.deletes)
            outcome.transmitters_added = len(diff.inserts)
            outcome.transmitters_updated = len(diff.updates)
            outcome.transmitters_removed = len(diff.deletes)
    except Exception as exc:
        logger.exception("Unexpected error processing %s", outcome.name)
        outcome.success = False
        outcome.errors.append(str(exc) or type(exc).__name__)
    finally:
        outcome.elapsed_ms = (time.perf_counter() - started) * 1000
    return outcome


async def run_catalog_sync(
    store: CatalogStore,
    client: httpx.AsyncClient,
    settings: Settings,
) -> SyncSummary:
    """Reconcile every catalogued satellite's TLE and transmitters.

    Roster and snapshot load failures propagate; per-satellite failures end
    up in the summary.
    """
    started = time.perf_counter()

    roster = await load_roster(store)
    if not roster:
        logger.info("No satellites found in catalog")
        return SyncSummary(message="No satellites to sync")
    logger.info("Found %d satellites to sync", len(roster))

    satellite_ids = [satellite.id for satellite in roster]
    snapshot = CatalogSnapshot(
        tles=await load_tles(store, satellite_ids, settings.read_chunk_size),
        transmitters=await load_transmitters(store, satellite_ids, settings.read_chunk_size),
    )

    pending = PendingWriteSet()
    now_iso = datetime.now(timezone.utc).isoformat()

    outcomes = await run_pool(
        roster,
        lambda satellite: process_satellite(
            satellite, client, settings, snapshot, pending, now_iso
        ),
        settings.concurrency,
    )

    writes = await flush_pending(store, pending, settings.write_chunk_size)

    duration_ms = (time.perf_counter() - started) * 1000
    summary = summarize(outcomes, writes, duration_ms)
    logger.info(
        "Sync completed in %s: %d processed, %d TLEs updated, "
        "transmitters +%d ~%d -%d, %d errors",
        summary.duration,
        summary.processed,
        summary.updated,
        summary.transmitters_added,
        summary.transmitters_updated,
        summary.transmitters_removed,
        len(summary.errors),
    )
    return summary
