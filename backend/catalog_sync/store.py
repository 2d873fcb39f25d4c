"""Catalog store access: the primitives the sync jobs need, plus a Supabase adapter.

The store's engine is not ours; everything goes through select, upsert,
insert, delete-by-id and filtered update. The Supabase adapter speaks
PostgREST (``/rest/v1/<table>``) directly over httpx.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

import httpx

from catalog_sync.batch_writer import chunked
from catalog_sync.config import Settings
from catalog_sync.errors import ConfigError, StoreError
from catalog_sync.models import (
    SATELLITES_TABLE,
    TLE_TABLE,
    TRANSMITTERS_TABLE,
    Satellite,
    TLERecord,
    TransmitterRecord,
)

logger = logging.getLogger(__name__)

TRANSMITTER_COLUMNS = (
    "id",
    "satellite_id",
    "description",
    "mode",
    "alive",
    "uplink_low",
    "uplink_high",
    "downlink_low",
    "downlink_high",
)


@dataclass(frozen=True)
class Filter:
    """Row filter. ``op`` is one of eq, neq, in, not_null."""

    column: str
    op: str
    value: Any = None

    @classmethod
    def eq(cls, column: str, value: Any) -> Filter:
        return cls(column, "eq", value)

    @classmethod
    def neq(cls, column: str, value: Any) -> Filter:
        return cls(column, "neq", value)

    @classmethod
    def is_in(cls, column: str, values: Iterable[Any]) -> Filter:
        return cls(column, "in", tuple(values))

    @classmethod
    def not_null(cls, column: str) -> Filter:
        return cls(column, "not_null")


class CatalogStore(Protocol):
    async def select(
        self, table: str, columns: Sequence[str], filters: Sequence[Filter] = ()
    ) -> list[dict[str, Any]]: ...

    async def upsert(self, table: str, rows: list[dict[str, Any]], on_conflict: str) -> None: ...

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> None: ...

    async def delete(self, table: str, ids: list[Any]) -> None: ...

    async def update(
        self, table: str, patch: dict[str, Any], filters: Sequence[Filter]
    ) -> int: ...


# --- Bulk reads used by the sync job ---

async def load_roster(store: CatalogStore) -> list[Satellite]:
    """Every satellite that has a catalog number."""
    rows = await store.select(
        SATELLITES_TABLE,
        ("id", "norad_id", "name", "status"),
        (Filter.not_null("norad_id"),),
    )
    return [Satellite.model_validate(row) for row in rows]


async def load_tles(
    store: CatalogStore,
    satellite_ids: Sequence[Any],
    chunk_size: int = 100,
) -> dict[Any, TLERecord]:
    tles: dict[Any, TLERecord] = {}
    for chunk in chunked(satellite_ids, chunk_size):
        rows = await store.select(
            TLE_TABLE,
            ("satellite_id", "tle_line1", "tle_line2", "epoch", "source"),
            (Filter.is_in("satellite_id", chunk),),
        )
        for row in rows:
            record = TLERecord.model_validate(row)
            tles[record.satellite_id] = record
    return tles


async def load_transmitters(
    store: CatalogStore,
    satellite_ids: Sequence[Any],
    chunk_size: int = 100,
) -> dict[Any, list[TransmitterRecord]]:
    """Existing transmitter rows grouped by satellite, in store order."""
    grouped: dict[Any, list[TransmitterRecord]] = {}
    for chunk in chunked(satellite_ids, chunk_size):
        rows = await store.select(
            TRANSMITTERS_TABLE,
            TRANSMITTER_COLUMNS,
            (Filter.is_in("satellite_id", chunk),),
        )
        for row in rows:
            record = TransmitterRecord.model_validate(row)
            grouped.setdefault(record.satellite_id, []).append(record)
    return grouped


# --- Supabase (PostgREST) adapter ---

def _postgrest_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if any(char in text for char in ',.:()" '):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def _postgrest_filter(flt: Filter) -> tuple[str, str]:
    if flt.op == "eq":
        return flt.column, f"eq.{_postgrest_literal(flt.value)}"
    if flt.op == "neq":
        return flt.column, f"neq.{_postgrest_literal(flt.value)}"
    if flt.op == "in":
        values = ",".join(_postgrest_literal(v) for v in flt.value)
        return flt.column, f"in.({values})"
    if flt.op == "not_null":
        return flt.column, "not.is.null"
    raise ValueError(f"Unsupported filter operator: {flt.op}")


class SupabaseStore:
    """CatalogStore backed by a Supabase project's REST API."""

    PAGE_SIZE = 1000
    # Offset paging needs a total order; the tle table is keyed by satellite_id
    ORDER_KEYS = {TLE_TABLE: "satellite_id"}

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rest_url = f"{url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                f"{self._rest_url}/{table}",
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:300]
            raise StoreError(
                f"{method} {table} failed with status {exc.response.status_code}: {body}"
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        return response

    async def select(
        self, table: str, columns: Sequence[str], filters: Sequence[Filter] = ()
    ) -> list[dict[str, Any]]:
        params = [
            ("select", ",".join(columns)),
            ("order", f"{self.ORDER_KEYS.get(table, 'id')}.asc"),
        ]
        params.extend(_postgrest_filter(flt) for flt in filters)

        rows: list[dict[str, Any]] = []
        offset = 0
        while True:
            response = await self._request(
                "GET",
                table,
                params=params,
                headers={
                    "Range-Unit": "items",
                    "Range": f"{offset}-{offset + self.PAGE_SIZE - 1}",
                },
            )
            page = response.json()
            rows.extend(page)
            if len(page) < self.PAGE_SIZE:
                return rows
            offset += self.PAGE_SIZE

    async def upsert(self, table: str, rows: list[dict[str, Any]], on_conflict: str) -> None:
        await self._request(
            "POST",
            table,
            params=[("on_conflict", on_conflict)],
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> None:
        await self._request("POST", table, json=rows, headers={"Prefer": "return=minimal"})

    async def delete(self, table: str, ids: list[Any]) -> None:
        await self._request(
            "DELETE",
            table,
            params=[_postgrest_filter(Filter.is_in("id", ids))],
            headers={"Prefer": "return=minimal"},
        )

    async def update(
        self, table: str, patch: dict[str, Any], filters: Sequence[Filter]
    ) -> int:
        """Apply ``patch`` to matching rows; returns how many rows changed."""
        params = [("select", "id")]
        params.extend(_postgrest_filter(flt) for flt in filters)
        response = await self._request(
            "PATCH",
            table,
            params=params,
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        return len(response.json())


# Singleton
_store: SupabaseStore | None = None


def get_store(settings: Settings) -> SupabaseStore:
    global _store
    if _store is None:
        if not settings.supabase_url or not settings.supabase_key:
            raise ConfigError("Missing Supabase environment variables")
        _store = SupabaseStore(settings.supabase_url, settings.supabase_key)
    return _store


async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.aclose()
        _store = None
