"""SatNOGS DB transmitter registry client."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from catalog_sync.config import Settings
from catalog_sync.errors import FetchError, ParseError
from catalog_sync.http_client import fetch_feed
from catalog_sync.models import TransmitterFeedEntry

logger = logging.getLogger(__name__)

TRANSMITTERS_PATH = "/api/transmitters/"


def transmitters_url(base_url: str, norad_id: int) -> str:
    return f"{base_url}{TRANSMITTERS_PATH}?satellite__norad_cat_id={norad_id}"


def parse_transmitters(payload: Any) -> list[TransmitterFeedEntry]:
    """Normalize a bare list or a ``{"results": [...]}`` envelope."""
    if isinstance(payload, dict):
        payload = payload.get("results") or []
    if not isinstance(payload, list):
        raise ParseError(f"Unexpected transmitter payload type {type(payload).__name__}")

    entries: list[TransmitterFeedEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            entries.append(TransmitterFeedEntry.model_validate(item))
        except ValidationError as exc:
            raise ParseError(f"Malformed transmitter entry: {exc.errors()[0]['msg']}") from exc
    return entries


async def fetch_transmitters(
    client: httpx.AsyncClient,
    norad_id: int,
    settings: Settings,
) -> list[TransmitterFeedEntry]:
    url = transmitters_url(settings.satnogs_base_url, norad_id)
    response = await fetch_feed(client, url, settings)
    if not response.is_success:
        raise FetchError(url, f"SatNOGS API responded with status {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise ParseError(f"SatNOGS returned invalid JSON for {norad_id}") from exc
    return parse_transmitters(payload)
