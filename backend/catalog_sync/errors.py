"""Catalog sync exception hierarchy.

Fetch and parse errors are per-entity and recoverable; the orchestrator
records them in the entity's outcome. Write, store and auth errors are
reported at the run level.
"""

from __future__ import annotations


class CatalogSyncError(Exception):
    """Base exception for all catalog sync failures."""


class ConfigError(CatalogSyncError):
    """Raised for invalid runtime configuration."""


class FetchError(CatalogSyncError):
    """Raised when a feed request fails after all retry attempts."""

    def __init__(self, url: str, cause: BaseException | str | None = None):
        self.url = url
        self.cause = cause
        detail = _describe(cause) if cause is not None else "request failed"
        super().__init__(f"Fetch failed for {url}: {detail}")


class ParseError(CatalogSyncError):
    """Raised for a malformed feed payload. Never retried."""


class StoreError(CatalogSyncError):
    """Raised when a catalog store request fails."""


class BatchWriteError(CatalogSyncError):
    """Raised when one chunk of a chunked write fails.

    Chunks before ``chunk_index`` were written; later chunks were not attempted.
    """

    def __init__(
        self,
        operation: str,
        chunk_index: int,
        cause: BaseException,
        rows_written: int = 0,
    ):
        self.operation = operation
        self.chunk_index = chunk_index
        self.cause = cause
        self.rows_written = rows_written
        super().__init__(
            f"{operation} failed on chunk {chunk_index}: {_describe(cause)}"
        )


class AuthError(CatalogSyncError):
    """Raised when the cron trigger credential is missing or wrong."""


def _describe(cause: BaseException | str) -> str:
    if isinstance(cause, str):
        return cause
    text = str(cause)
    return text or type(cause).__name__
