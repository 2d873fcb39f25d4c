"""FastAPI application: cron route registration, error mapping and the health check."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalog_sync.errors import AuthError, CatalogSyncError
from catalog_sync.models import HealthResponse
from catalog_sync.routes.cron import router as cron_router
from catalog_sync.store import close_store

# Load .env before anything else
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # The store singleton is created lazily on the first cron request
    await close_store()


app = FastAPI(
    title="Orbit Catalog Sync",
    description="Keeps the satellite catalog in step with CelesTrak and SatNOGS",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    logger.warning("Unauthorized cron attempt on %s", request.url.path)
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


@app.exception_handler(CatalogSyncError)
async def sync_error_handler(request: Request, exc: CatalogSyncError):
    # e.g. missing store configuration, raised while resolving dependencies
    logger.error("Request to %s failed: %s", request.url.path, exc)
    return JSONResponse({"success": False, "error": str(exc)}, status_code=500)


app.include_router(cron_router)


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="ok")
