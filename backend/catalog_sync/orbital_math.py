"""TLE text handling: element-line extraction and epoch derivation.

No propagation happens here; the lines are stored verbatim.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from catalog_sync.errors import ParseError
from catalog_sync.models import TLESet

# Element-set years are two digits; 57 is the first year of the catalog (Sputnik)
CENTURY_PIVOT = 57

# 0-indexed slices into line 1 (columns 19-20 and 21-32, 1-indexed)
EPOCH_YEAR = slice(18, 20)
EPOCH_DAY = slice(20, 32)


def derive_epoch(line1: str) -> str:
    """Return the element-set epoch of line 1 as ``YYYY-DDD.DDDDDDDD``."""
    year_str = line1[EPOCH_YEAR]
    day_str = line1[EPOCH_DAY]
    if len(year_str) != 2 or not year_str.isdigit():
        raise ParseError(f"Invalid epoch year {year_str!r} in TLE line 1")
    try:
        day = float(day_str)
    except ValueError:
        raise ParseError(f"Invalid epoch day {day_str!r} in TLE line 1") from None
    if not 1 <= day < 367:
        raise ParseError(f"Epoch day {day_str!r} out of range in TLE line 1")
    century = "19" if int(year_str) >= CENTURY_PIVOT else "20"
    return f"{century}{year_str}-{day_str}"


def epoch_to_datetime(epoch: str) -> datetime:
    """Convert a derived epoch string to an aware UTC datetime."""
    try:
        year_str, day_str = epoch.split("-", 1)
        year = int(year_str)
        day = float(day_str)
    except ValueError as exc:
        raise ParseError(f"Invalid epoch {epoch!r}") from exc
    return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=day - 1)


def parse_tle_text(text: str) -> TLESet:
    """Extract the two element lines (and epoch) from a GP ``FORMAT=tle`` body.

    Three or more lines: name line first, elements on lines 2-3.
    Two lines: both are element lines.
    """
    lines = [line.strip() for line in text.strip().splitlines()]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        raise ParseError(f"Expected 2-3 TLE lines, got {len(lines)}")

    if len(lines) >= 3:
        line1, line2 = lines[1], lines[2]
    else:
        line1, line2 = lines[0], lines[1]

    if not line1.startswith("1 ") or not line2.startswith("2 "):
        raise ParseError("Element lines do not start with '1 ' and '2 '")
    if len(line1) < EPOCH_DAY.stop:
        raise ParseError(f"TLE line 1 too short ({len(line1)} chars)")

    return TLESet(line1=line1, line2=line2, epoch=derive_epoch(line1))
