"""Runtime configuration, read from the process environment (and .env)."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from catalog_sync.errors import ConfigError

CELESTRAK_BASE = "https://celestrak.org"
SATNOGS_BASE = "https://db.satnogs.org"

DEFAULT_CONCURRENCY = 30
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_MS = 500
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_CHUNK_SIZE = 100


@dataclass(frozen=True)
class Settings:
    """Validated settings for one process.

    Attributes:
        cron_secret: Bearer secret expected by the cron endpoints. ``None``
            rejects every trigger.
        supabase_url: Store base URL.
        supabase_key: Store service-role key.
        celestrak_base_url: Host serving GP elements and the SATCAT.
        satnogs_base_url: Host serving the transmitter registry.
        concurrency: Ceiling on in-flight entity pipelines.
        fetch_max_attempts: Attempts per feed request.
        fetch_backoff_ms: Linear backoff base between attempts.
        fetch_timeout_ms: Deadline for a single attempt.
        write_chunk_size: Rows per store write.
        read_chunk_size: Ids per bulk-read request.
        decay_chunk_size: Catalog numbers per decay update.
    """

    cron_secret: str | None = None
    supabase_url: str | None = None
    supabase_key: str | None = None
    celestrak_base_url: str = CELESTRAK_BASE
    satnogs_base_url: str = SATNOGS_BASE
    concurrency: int = DEFAULT_CONCURRENCY
    fetch_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    fetch_backoff_ms: int = DEFAULT_BACKOFF_MS
    fetch_timeout_ms: int = DEFAULT_TIMEOUT_MS
    write_chunk_size: int = DEFAULT_CHUNK_SIZE
    read_chunk_size: int = DEFAULT_CHUNK_SIZE
    decay_chunk_size: int = DEFAULT_CHUNK_SIZE

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ConfigError: If a numeric variable is not a positive integer.
        """
        return cls(
            cron_secret=os.getenv("CRON_SECRET") or None,
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or None,
            celestrak_base_url=_base_url("CELESTRAK_BASE_URL", CELESTRAK_BASE),
            satnogs_base_url=_base_url("SATNOGS_BASE_URL", SATNOGS_BASE),
            concurrency=_positive_int("SYNC_CONCURRENCY", DEFAULT_CONCURRENCY),
            fetch_max_attempts=_positive_int("FETCH_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            fetch_backoff_ms=_positive_int("FETCH_BACKOFF_MS", DEFAULT_BACKOFF_MS),
            fetch_timeout_ms=_positive_int("FETCH_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            write_chunk_size=_positive_int("WRITE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            read_chunk_size=_positive_int("READ_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            decay_chunk_size=_positive_int("DECAY_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        )

    def with_overrides(self, **changes: object) -> "Settings":
        return replace(self, **changes)


def _base_url(name: str, default: str) -> str:
    return (os.getenv(name) or default).rstrip("/")


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


# Singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
