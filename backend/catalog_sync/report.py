"""Run reporter: folds per-satellite outcomes and write results into one summary."""

from __future__ import annotations

from catalog_sync.models import RunOutcome, SlowestEntity, SyncSummary, WriteResult


def format_duration(duration_ms: float) -> str:
    return f"{int(round(duration_ms))}ms"


def summarize(
    outcomes: list[RunOutcome],
    writes: list[WriteResult],
    duration_ms: float,
) -> SyncSummary:
    succeeded = [o for o in outcomes if o.success]
    slowest = max(outcomes, key=lambda o: o.elapsed_ms, default=None)
    average = sum(o.elapsed_ms for o in outcomes) / len(outcomes) if outcomes else 0.0

    errors = [
        f"{o.name} ({o.norad_id}): {o.error}"
        for o in outcomes
        if o.error
    ]
    errors.extend(w.error for w in writes if w.error)

    return SyncSummary(
        success=not any(w.error for w in writes),
        processed=len(outcomes),
        succeeded=len(succeeded),
        failed=len(outcomes) - len(succeeded),
        updated=sum(1 for o in outcomes if o.tle_changed),
        transmitters_added=sum(o.transmitters_added for o in outcomes),
        transmitters_updated=sum(o.transmitters_updated for o in outcomes),
        transmitters_removed=sum(o.transmitters_removed for o in outcomes),
        duration=format_duration(duration_ms),
        duration_ms=int(round(duration_ms)),
        average_ms=round(average, 1),
        slowest=SlowestEntity(
            norad_id=slowest.norad_id,
            name=slowest.name,
            elapsed_ms=round(slowest.elapsed_ms, 1),
        ) if slowest else None,
        errors=errors,
        writes=writes,
    )
