"""Timeout- and retry-wrapped GET shared by every feed."""

from __future__ import annotations

import asyncio
import logging

import httpx

from catalog_sync.config import Settings
from catalog_sync.errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = "orbit-catalog-sync/1.0"


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Shared async client for one run, pooled to the concurrency ceiling."""
    # Two feeds per pipeline can be in flight at once
    limits = httpx.Limits(
        max_connections=settings.concurrency * 2,
        max_keepalive_connections=settings.concurrency,
    )
    return httpx.AsyncClient(
        timeout=settings.fetch_timeout_ms / 1000,
        limits=limits,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    max_attempts: int = 3,
    base_backoff_ms: int = 500,
    timeout_ms: int = 5000,
) -> httpx.Response:
    """GET ``url``, retrying transport failures and timeouts.

    Every attempt gets its own deadline. After a failed attempt ``n`` the call
    waits ``base_backoff_ms * n`` before trying again. Any HTTP response,
    including 4xx/5xx, is returned as-is so the caller can interpret it.

    Raises:
        FetchError: When every attempt failed.
    """
    last_error: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            logger.info("Retry #%d for %s", attempt - 1, url)
        try:
            return await asyncio.wait_for(client.get(url), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            last_error = TimeoutError(f"timed out after {timeout_ms}ms")
            last_error.__cause__ = exc
        except httpx.TransportError as exc:
            last_error = exc
        if attempt < max_attempts:
            await asyncio.sleep(base_backoff_ms * attempt / 1000)

    logger.warning("Giving up on %s after %d attempts: %s", url, max_attempts, last_error)
    raise FetchError(url, last_error)


async def fetch_feed(client: httpx.AsyncClient, url: str, settings: Settings) -> httpx.Response:
    return await fetch_with_retry(
        client,
        url,
        max_attempts=settings.fetch_max_attempts,
        base_backoff_ms=settings.fetch_backoff_ms,
        timeout_ms=settings.fetch_timeout_ms,
    )
