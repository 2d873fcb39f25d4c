from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Any, Callable, Sequence
from urllib.parse import parse_qs

import httpx
import pytest

from catalog_sync.config import Settings
from catalog_sync.errors import StoreError
from catalog_sync.store import Filter

CELESTRAK = "https://celestrak.test"
SATNOGS = "https://satnogs.test"


def make_line1(norad_id: int, year: str = "24", day: str = "001.50000000") -> str:
    return f"1 {norad_id:05d}U 98067A   {year}{day}  .00016717  00000-0  10270-3 0  9005"


def make_line2(norad_id: int, mean_motion: str = "15.49815350") -> str:
    return f"2 {norad_id:05d}  51.6416 247.4627 0006703 130.5360 325.0288 {mean_motion} 24562"


def make_tle_text(norad_id: int, name: str = "TESTSAT", **kwargs: str) -> str:
    line1 = make_line1(norad_id, **kwargs)
    return f"{name}\r\n{line1}\r\n{make_line2(norad_id)}\r\n"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        cron_secret="s3cret",
        celestrak_base_url=CELESTRAK,
        satnogs_base_url=SATNOGS,
        concurrency=4,
        fetch_max_attempts=3,
        fetch_backoff_ms=1,
        fetch_timeout_ms=1000,
        write_chunk_size=2,
        read_chunk_size=2,
        decay_chunk_size=2,
    )


class InMemoryStore:
    """CatalogStore fake with per-call failure injection."""

    def __init__(
        self,
        satellites: Sequence[dict[str, Any]] = (),
        tle: Sequence[dict[str, Any]] = (),
        transmitters: Sequence[dict[str, Any]] = (),
    ) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            "satellites": [dict(row) for row in satellites],
            "tle": [dict(row) for row in tle],
            "transmitters": [dict(row) for row in transmitters],
        }
        self.calls: list[tuple[str, str, int]] = []
        self._failures: dict[tuple[str, str], set[int]] = {}
        self._counters: dict[tuple[str, str], int] = {}
        self._ids = itertools.count(1000)

    def fail(self, op: str, table: str, *, on_call: int = 0) -> None:
        self._failures.setdefault((op, table), set()).add(on_call)

    def _track(self, op: str, table: str, size: int) -> None:
        key = (op, table)
        index = self._counters.get(key, 0)
        self._counters[key] = index + 1
        self.calls.append((op, table, size))
        if index in self._failures.get(key, set()):
            raise StoreError(f"{op} {table} rejected by test store")

    @staticmethod
    def _matches(row: dict[str, Any], filters: Sequence[Filter]) -> bool:
        for flt in filters:
            value = row.get(flt.column)
            if flt.op == "eq" and value != flt.value:
                return False
            # SQL semantics: NULL != x is not true
            if flt.op == "neq" and (value is None or value == flt.value):
                return False
            if flt.op == "in" and value not in flt.value:
                return False
            if flt.op == "not_null" and value is None:
                return False
        return True

    async def select(self, table, columns, filters=()):
        self._track("select", table, 0)
        return [
            {column: copy.deepcopy(row.get(column)) for column in columns}
            for row in self.tables[table]
            if self._matches(row, filters)
        ]

    async def upsert(self, table, rows, on_conflict):
        self._track("upsert", table, len(rows))
        for row in rows:
            existing = next(
                (r for r in self.tables[table] if r.get(on_conflict) == row[on_conflict]),
                None,
            )
            if existing is not None:
                existing.update(row)
            else:
                self.tables[table].append({"id": next(self._ids), **row})

    async def insert(self, table, rows):
        self._track("insert", table, len(rows))
        for row in rows:
            self.tables[table].append({"id": next(self._ids), **row})

    async def delete(self, table, ids):
        self._track("delete", table, len(ids))
        self.tables[table] = [r for r in self.tables[table] if r.get("id") not in ids]

    async def update(self, table, patch, filters):
        self._track("update", table, 0)
        matched = [r for r in self.tables[table] if self._matches(r, filters)]
        for row in matched:
            row.update(patch)
        return len(matched)


class FeedServer:
    """Fake CelesTrak + SatNOGS behind an httpx.MockTransport."""

    def __init__(self, delay: float = 0.0) -> None:
        self.tle_texts: dict[int, str] = {}
        self.transmitters: dict[int, Any] = {}
        self.decayed_csv: str = ""
        self.delay = delay
        self.requests: list[httpx.Request] = []
        self.tle_in_flight = 0
        self.max_tle_in_flight = 0
        self.overrides: dict[str, Callable[[httpx.Request], Any]] = {}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = {k: v[0] for k, v in parse_qs(request.url.query.decode()).items()}
        path = request.url.path
        override = self.overrides.get(path)
        if override is not None:
            result = override(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        if path == "/NORAD/elements/gp.php":
            norad_id = int(params["CATNR"])
            self.tle_in_flight += 1
            self.max_tle_in_flight = max(self.max_tle_in_flight, self.tle_in_flight)
            try:
                await asyncio.sleep(self.delay)
            finally:
                self.tle_in_flight -= 1
            if norad_id not in self.tle_texts:
                return httpx.Response(404, text="Not found")
            return httpx.Response(200, text=self.tle_texts[norad_id])

        if path == "/api/transmitters/":
            await asyncio.sleep(self.delay)
            norad_id = int(params["satellite__norad_cat_id"])
            return httpx.Response(200, json=self.transmitters.get(norad_id, []))

        if path == "/satcat/decayed-with-last.php":
            return httpx.Response(200, text=self.decayed_csv)

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture()
def feeds() -> FeedServer:
    return FeedServer()


def transmitter(description: str, **fields: Any) -> dict[str, Any]:
    entry = {
        "uuid": f"uuid-{description}",
        "description": description,
        "mode": "FM",
        "alive": True,
        "uplink_low": None,
        "uplink_high": None,
        "downlink_low": 145800000,
        "downlink_high": None,
    }
    entry.update(fields)
    return entry
