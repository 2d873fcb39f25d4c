"""Cron trigger endpoints.

POST /api/cron/sync-tle: reconcile TLEs + transmitters for the whole catalog
POST /api/cron/decayed: mark satellites from the CelesTrak decayed list

Both require ``Authorization: Bearer <CRON_SECRET>`` and take no body.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from catalog_sync.auth import require_cron_secret
from catalog_sync.config import Settings, get_settings
from catalog_sync.decay import run_decay_sync
from catalog_sync.http_client import build_client
from catalog_sync.models import DecaySummary, SyncSummary
from catalog_sync.pipeline import run_catalog_sync
from catalog_sync.store import CatalogStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)


def get_catalog_store(settings: Settings = Depends(get_settings)) -> CatalogStore:
    return get_store(settings)


async def get_http_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    async with build_client(settings) as client:
        yield client


def _failure(exc: Exception) -> JSONResponse:
    return JSONResponse({"success": False, "error": str(exc)}, status_code=500)


@router.post("/sync-tle", response_model=SyncSummary)
async def sync_tle(
    store: CatalogStore = Depends(get_catalog_store),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    try:
        return await run_catalog_sync(store, client, settings)
    except Exception as exc:
        logger.exception("TLE sync error")
        return _failure(exc)


@router.post("/decayed", response_model=DecaySummary)
async def sync_decayed(
    store: CatalogStore = Depends(get_catalog_store),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    try:
        return await run_decay_sync(store, client, settings)
    except Exception as exc:
        logger.exception("Failed to update decayed satellites")
        return _failure(exc)
