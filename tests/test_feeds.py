from __future__ import annotations

import asyncio

import httpx
import pytest

from catalog_sync.celestrak import fetch_decayed_norad_ids, fetch_tle, parse_decayed_csv
from catalog_sync.errors import FetchError, ParseError
from catalog_sync.satnogs import fetch_transmitters, parse_transmitters

from conftest import make_line1, make_tle_text, transmitter


# --- CelesTrak GP ---

def test_fetch_tle_parses_element_set(feeds, settings):
    feeds.tle_texts[25544] = make_tle_text(25544)

    async def go():
        async with feeds.client() as client:
            return await fetch_tle(client, 25544, settings)

    tle = asyncio.run(go())

    assert tle.line1 == make_line1(25544)
    assert tle.epoch == "2024-001.50000000"
    assert feeds.requests[0].url.params["CATNR"] == "25544"
    assert feeds.requests[0].url.params["FORMAT"] == "tle"


def test_fetch_tle_returns_none_when_object_unknown(feeds, settings):
    async def go():
        async with feeds.client() as client:
            return await fetch_tle(client, 99999, settings)

    assert asyncio.run(go()) is None


def test_fetch_tle_raises_on_server_error(feeds, settings):
    feeds.overrides["/NORAD/elements/gp.php"] = lambda request: httpx.Response(500)

    async def go():
        async with feeds.client() as client:
            return await fetch_tle(client, 25544, settings)

    with pytest.raises(FetchError):
        asyncio.run(go())


# --- SatNOGS ---

def test_parse_transmitters_accepts_bare_list_and_envelope():
    entries = [transmitter("Mode V/U FM"), transmitter("APRS")]

    bare = parse_transmitters(entries)
    wrapped = parse_transmitters({"count": 2, "results": entries})

    assert [e.description for e in bare] == ["Mode V/U FM", "APRS"]
    assert wrapped == bare


def test_parse_transmitters_normalizes_fields():
    raw = {
        "description": None,
        "mode": "",
        "uplink_low": 0,
        "uplink_high": None,
        "downlink_low": 437800000,
    }

    [entry] = parse_transmitters([raw])

    assert entry.description == ""
    assert entry.mode is None
    assert entry.alive is True
    assert entry.uplink_low is None
    assert entry.uplink_high is None
    assert entry.downlink_low == 437800000
    assert entry.downlink_high is None


def test_parse_transmitters_only_explicit_false_is_dead():
    entries = parse_transmitters([
        transmitter("a", alive=False),
        transmitter("b", alive=None),
        transmitter("c", alive=True),
    ])

    assert [e.alive for e in entries] == [False, True, True]


def test_parse_transmitters_rejects_unexpected_shape():
    with pytest.raises(ParseError):
        parse_transmitters("not a list")


def test_parse_transmitters_rejects_bad_frequency():
    with pytest.raises(ParseError):
        parse_transmitters([transmitter("x", downlink_low="lots")])


def test_fetch_transmitters_raises_parse_error_on_invalid_json(feeds, settings):
    feeds.overrides["/api/transmitters/"] = lambda request: httpx.Response(200, text="<html>")

    async def go():
        async with feeds.client() as client:
            return await fetch_transmitters(client, 25544, settings)

    with pytest.raises(ParseError):
        asyncio.run(go())


def test_fetch_transmitters_filters_by_catalog_number(feeds, settings):
    feeds.transmitters[25544] = {"results": [transmitter("Mode V/U FM")]}

    async def go():
        async with feeds.client() as client:
            return await fetch_transmitters(client, 25544, settings)

    entries = asyncio.run(go())

    assert len(entries) == 1
    assert feeds.requests[0].url.params["satellite__norad_cat_id"] == "25544"


# --- CelesTrak SATCAT decayed list ---

def test_parse_decayed_csv_skips_header_and_unquotes():
    text = (
        "NORAD_CAT_ID,OBJECT_NAME,DECAY_DATE\r\n"
        "\"10\",\"VANGUARD R/B\",2024-01-02\r\n"
        "20,SL-8 R/B,2023-05-06\r\n"
        "\r\n"
        ",MISSING,\r\n"
        "abc,BAD,\r\n"
        "10,DUPLICATE,\r\n"
    )

    assert parse_decayed_csv(text) == [10, 20]


def test_parse_decayed_csv_header_only():
    assert parse_decayed_csv("NORAD_CAT_ID,OBJECT_NAME\n") == []


def test_fetch_decayed_raises_on_bad_status(feeds, settings):
    feeds.overrides["/satcat/decayed-with-last.php"] = lambda request: httpx.Response(502)

    async def go():
        async with feeds.client() as client:
            return await fetch_decayed_norad_ids(client, settings)

    with pytest.raises(FetchError):
        asyncio.run(go())


def test_parse_transmitters_rounds_frequency_bounds():
    [entry] = parse_transmitters([
        transmitter("x", downlink_low=145.8, downlink_high="145800000.0", uplink_low="435000000", uplink_high=0.2),
    ])

    assert entry.downlink_low == 146
    assert entry.downlink_high == 145800000
    assert entry.uplink_low == 435000000
    assert entry.uplink_high is None


def test_parse_transmitters_rejects_non_finite_frequency():
    with pytest.raises(ParseError):
        parse_transmitters([transmitter("x", downlink_low="inf")])
