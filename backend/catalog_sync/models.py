from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

SATELLITES_TABLE = "satellites"
TLE_TABLE = "tle"
TRANSMITTERS_TABLE = "transmitters"

FREQUENCY_FIELDS = ("uplink_low", "uplink_high", "downlink_low", "downlink_high")
TRANSMITTER_DIFF_FIELDS = ("mode", "alive", *FREQUENCY_FIELDS)


# --- Catalog rows ---

class SatelliteStatus(str, Enum):
    UNKNOWN = "unknown"
    ACTIVE = "active"
    DECAYED = "decayed"


class Satellite(BaseModel):
    id: str | int
    norad_id: int
    name: str | None = None
    status: SatelliteStatus = SatelliteStatus.UNKNOWN

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> SatelliteStatus:
        # The import tool writes "Unknown"; anything unrecognised is unknown too
        if isinstance(value, SatelliteStatus):
            return value
        try:
            return SatelliteStatus(str(value or "").strip().lower())
        except ValueError:
            return SatelliteStatus.UNKNOWN

    @property
    def label(self) -> str:
        return self.name or f"NORAD {self.norad_id}"


class TLESet(BaseModel):
    """Two element lines as fetched, plus the derived epoch."""

    line1: str
    line2: str
    epoch: str


class TLERecord(BaseModel):
    satellite_id: str | int
    tle_line1: str
    tle_line2: str
    epoch: str | None = None
    source: str = "celestrak"


class TransmitterFeedEntry(BaseModel):
    """One normalized SatNOGS transmitter entry."""

    description: str = ""
    mode: str | None = None
    alive: bool = True
    uplink_low: int | None = None
    uplink_high: int | None = None
    downlink_low: int | None = None
    downlink_high: int | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("mode", mode="before")
    @classmethod
    def _mode(cls, value: Any) -> Any:
        return value or None

    @field_validator("alive", mode="before")
    @classmethod
    def _alive(cls, value: Any) -> Any:
        # Only an explicit false marks a transmitter dead
        return value is not False

    @field_validator(*FREQUENCY_FIELDS, mode="before")
    @classmethod
    def _frequency(cls, value: Any) -> Any:
        # Bounds are whole hertz; fractional or string feed values are rounded
        if not value:
            return None
        try:
            hertz = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"not a frequency: {value!r}") from None
        if not math.isfinite(hertz):
            raise ValueError(f"not a frequency: {value!r}")
        return round(hertz) or None

    def diff_fields(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in TRANSMITTER_DIFF_FIELDS}


class TransmitterRecord(TransmitterFeedEntry):
    id: str | int
    satellite_id: str | int


# --- Per-run containers ---

@dataclass
class PendingWriteSet:
    """Writes accumulated by all pipelines of one run, flushed once at the end."""

    tle_upserts: list[dict[str, Any]] = field(default_factory=list)
    transmitter_inserts: list[dict[str, Any]] = field(default_factory=list)
    transmitter_updates: list[dict[str, Any]] = field(default_factory=list)
    transmitter_deletes: list[str | int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.tle_upserts
            or self.transmitter_inserts
            or self.transmitter_updates
            or self.transmitter_deletes
        )


@dataclass
class RunOutcome:
    norad_id: int
    name: str
    success: bool = True
    tle_changed: bool = False
    transmitters_added: int = 0
    transmitters_updated: int = 0
    transmitters_removed: int = 0
    elapsed_ms: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def error(self) -> str | None:
        return "; ".join(self.errors) if self.errors else None


# --- Run summaries (JSON responses) ---

class SlowestEntity(BaseModel):
    norad_id: int
    name: str
    elapsed_ms: float


class WriteResult(BaseModel):
    operation: str
    attempted: int
    written: int
    error: str | None = None


class SyncSummary(BaseModel):
    success: bool = True
    message: str | None = None
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    updated: int = Field(default=0, description="TLE rows changed")
    transmitters_added: int = 0
    transmitters_updated: int = 0
    transmitters_removed: int = 0
    duration: str = "0ms"
    duration_ms: int = 0
    average_ms: float = 0.0
    slowest: SlowestEntity | None = None
    errors: list[str] = []
    writes: list[WriteResult] = []


class DecaySummary(BaseModel):
    success: bool = True
    message: str | None = None
    found: int = Field(default=0, description="Catalog numbers in the decay feed")
    updated: int = 0
    duration: str = "0ms"
    error: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
