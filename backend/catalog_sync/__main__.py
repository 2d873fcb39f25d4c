"""
Run a sync job once, outside the HTTP trigger.

Run as:
    python -m catalog_sync sync [--concurrency N]
    python -m catalog_sync decay

Prints the JSON run summary; exits 1 if the run did not fully succeed.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from catalog_sync.config import Settings
from catalog_sync.decay import run_decay_sync
from catalog_sync.errors import CatalogSyncError, ConfigError
from catalog_sync.http_client import build_client
from catalog_sync.pipeline import run_catalog_sync
from catalog_sync.store import SupabaseStore

log = logging.getLogger("catalog_sync")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="catalog_sync", description=__doc__.splitlines()[1])
    parser.add_argument("job", choices=("sync", "decay"), help="which job to run")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="override SYNC_CONCURRENCY for this run",
    )
    return parser.parse_args(argv)


async def _run(job: str, settings: Settings) -> bool:
    if not settings.supabase_url or not settings.supabase_key:
        raise ConfigError("Missing Supabase environment variables")

    store = SupabaseStore(settings.supabase_url, settings.supabase_key)
    try:
        async with build_client(settings) as client:
            if job == "sync":
                summary = await run_catalog_sync(store, client, settings)
            else:
                summary = await run_decay_sync(store, client, settings)
    finally:
        await store.aclose()

    print(summary.model_dump_json(indent=2))
    return summary.success


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )
    args = _parse_args(argv)

    try:
        settings = Settings.from_env()
        if args.concurrency is not None:
            if args.concurrency <= 0:
                raise ConfigError("--concurrency must be positive")
            settings = settings.with_overrides(concurrency=args.concurrency)
        ok = asyncio.run(_run(args.job, settings))
    except CatalogSyncError as exc:
        log.error("%s job failed: %s", args.job, exc)
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
