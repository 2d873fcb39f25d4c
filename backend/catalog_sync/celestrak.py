"""CelesTrak feeds: per-object GP elements (TLE text) and the SATCAT decayed list."""

from __future__ import annotations

import csv
import io
import logging

import httpx

from catalog_sync.config import Settings
from catalog_sync.errors import FetchError
from catalog_sync.http_client import fetch_feed
from catalog_sync.models import TLESet
from catalog_sync.orbital_math import parse_tle_text

logger = logging.getLogger(__name__)

GP_PATH = "/NORAD/elements/gp.php"
DECAYED_PATH = "/satcat/decayed-with-last.php"


def gp_url(base_url: str, norad_id: int) -> str:
    return f"{base_url}{GP_PATH}?CATNR={norad_id}&FORMAT=tle"


def decayed_url(base_url: str) -> str:
    return f"{base_url}{DECAYED_PATH}?FORMAT=csv"


async def fetch_tle(
    client: httpx.AsyncClient,
    norad_id: int,
    settings: Settings,
) -> TLESet | None:
    """Fetch the current element set for one object.

    Returns None when CelesTrak has no record of the object (404).
    Raises FetchError for transport failures and other non-2xx statuses,
    ParseError for a body that is not a 2-3 line element set.
    """
    url = gp_url(settings.celestrak_base_url, norad_id)
    response = await fetch_feed(client, url, settings)
    if response.status_code == 404:
        return None
    if not response.is_success:
        raise FetchError(url, f"CelesTrak responded with status {response.status_code}")
    return parse_tle_text(response.text)


def parse_decayed_csv(text: str) -> list[int]:
    """Catalog numbers from the SATCAT decayed CSV (first column, header skipped)."""
    rows = csv.reader(io.StringIO(text))
    next(rows, None)

    norad_ids: set[int] = set()
    for row in rows:
        if not row:
            continue
        # csv strips proper quoting; stray quotes come from hand-edited mirrors
        raw = row[0].strip().strip('"')
        if not raw:
            continue
        try:
            norad_ids.add(int(raw))
        except ValueError:
            logger.debug("Skipping non-numeric catalog number %r", raw)
    return sorted(norad_ids)


async def fetch_decayed_norad_ids(client: httpx.AsyncClient, settings: Settings) -> list[int]:
    url = decayed_url(settings.celestrak_base_url)
    logger.info("Fetching decayed satellites from CelesTrak...")
    response = await fetch_feed(client, url, settings)
    if not response.is_success:
        raise FetchError(url, f"Unexpected status code {response.status_code}")
    norad_ids = parse_decayed_csv(response.text)
    logger.info("Found %d decayed satellites", len(norad_ids))
    return norad_ids
