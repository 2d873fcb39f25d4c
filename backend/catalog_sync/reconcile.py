"""Diffing of freshly fetched feed state against the stored snapshot.

Pure functions: no I/O, no shared state. The pipeline appends their output
to the run's pending writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from catalog_sync.models import TLERecord, TLESet, TransmitterFeedEntry, TransmitterRecord

TLE_SOURCE = "celestrak"


def tle_changed(fetched: TLESet, existing: TLERecord | None) -> bool:
    if existing is None:
        return True
    return existing.tle_line1 != fetched.line1 or existing.tle_line2 != fetched.line2


def diff_tle(
    satellite_id: Any,
    fetched: TLESet,
    existing: TLERecord | None,
    now_iso: str,
) -> dict[str, Any] | None:
    """Upsert row for ``fetched`` if it differs from ``existing``, else None.

    Both lines and the epoch always travel together in one row.
    """
    if not tle_changed(fetched, existing):
        return None
    return {
        "satellite_id": satellite_id,
        "tle_line1": fetched.line1,
        "tle_line2": fetched.line2,
        "epoch": fetched.epoch,
        "source": TLE_SOURCE,
        "updated_at": now_iso,
    }


@dataclass
class TransmitterDiff:
    inserts: list[dict[str, Any]] = field(default_factory=list)
    updates: list[dict[str, Any]] = field(default_factory=list)
    deletes: list[Any] = field(default_factory=list)


def latest_by_description(feed: list[TransmitterFeedEntry]) -> dict[str, TransmitterFeedEntry]:
    """Collapse feed entries sharing a description; the last one wins."""
    latest: dict[str, TransmitterFeedEntry] = {}
    for entry in feed:
        latest[entry.description] = entry
    return latest


def diff_transmitters(
    satellite_id: Any,
    feed: list[TransmitterFeedEntry],
    existing: list[TransmitterRecord],
    now_iso: str,
) -> TransmitterDiff:
    """Reconcile one satellite's transmitters, keyed by description.

    An empty feed yields no writes: SatNOGS answering with nothing is not
    taken as proof that every known transmitter is gone.
    """
    diff = TransmitterDiff()
    if not feed:
        return diff

    wanted = latest_by_description(feed)

    known: dict[str, TransmitterRecord] = {}
    for record in existing:
        if record.description in known:
            # Duplicate description already stored: keep the first row only
            diff.deletes.append(record.id)
        else:
            known[record.description] = record

    for description, entry in wanted.items():
        record = known.get(description)
        if record is None:
            diff.inserts.append({
                "satellite_id": satellite_id,
                "description": description,
                **entry.diff_fields(),
                "created_at": now_iso,
            })
        elif record.diff_fields() != entry.diff_fields():
            diff.updates.append({
                "id": record.id,
                "satellite_id": satellite_id,
                "description": description,
                **entry.diff_fields(),
            })

    for description, record in known.items():
        if description not in wanted:
            diff.deletes.append(record.id)

    return diff
