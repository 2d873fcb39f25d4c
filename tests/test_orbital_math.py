from __future__ import annotations

from datetime import datetime, timezone

import pytest

from catalog_sync.errors import ParseError
from catalog_sync.orbital_math import derive_epoch, epoch_to_datetime, parse_tle_text

from conftest import make_line1, make_line2, make_tle_text


@pytest.mark.parametrize(
    ("year", "expected"),
    [
        ("98", "1998-123.45678901"),
        ("24", "2024-123.45678901"),
        ("57", "1957-123.45678901"),
        ("56", "2056-123.45678901"),
        ("00", "2000-123.45678901"),
    ],
)
def test_derive_epoch_applies_century_pivot(year, expected):
    line1 = make_line1(25544, year=year, day="123.45678901")
    assert derive_epoch(line1) == expected


def test_derive_epoch_rejects_non_numeric_year():
    line1 = "1 25544U 98067A   xx001.50000000  .00016717  00000-0  10270-3 0  9005"
    with pytest.raises(ParseError):
        derive_epoch(line1)


@pytest.mark.parametrize("day", ["1.50000000 .", "001.5000000x", "000.50000000", "400.00000000"])
def test_derive_epoch_rejects_bad_day(day):
    line1 = make_line1(25544, day=day)
    with pytest.raises(ParseError):
        derive_epoch(line1)


def test_parse_rejects_single_spaced_line1():
    # Columns shift left by two, so the epoch field no longer holds a day
    line1 = "1 25544U 98067A 24001.50000000 .00016717 00000-0 10270-3 0 9005"
    with pytest.raises(ParseError, match="epoch day"):
        parse_tle_text(f"ISS\n{line1}\n{make_line2(25544)}\n")


def test_parse_three_line_response_skips_name_line():
    tle = parse_tle_text(make_tle_text(25544, name="ISS (ZARYA)"))

    assert tle.line1 == make_line1(25544)
    assert tle.line2 == make_line2(25544)
    assert tle.epoch == "2024-001.50000000"


def test_parse_two_line_response_uses_both_lines():
    text = f"{make_line1(43013)}\n{make_line2(43013)}\n"

    tle = parse_tle_text(text)

    assert tle.line1 == make_line1(43013)
    assert tle.line2 == make_line2(43013)


def test_parse_trims_whitespace_and_blank_lines():
    text = f"\n  NOAA 20  \n\n  {make_line1(43013)}  \n{make_line2(43013)}\n\n"

    tle = parse_tle_text(text)

    assert tle.line1 == make_line1(43013)


@pytest.mark.parametrize("body", ["", "No GP data found", "\n\n  \n"])
def test_parse_rejects_short_payloads(body):
    with pytest.raises(ParseError):
        parse_tle_text(body)


def test_parse_rejects_lines_that_are_not_elements():
    with pytest.raises(ParseError):
        parse_tle_text("<html>\n<body>rate limited</body>\n</html>")


def test_epoch_to_datetime():
    moment = epoch_to_datetime("2024-001.50000000")
    assert moment == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)


def test_epoch_to_datetime_rejects_garbage():
    with pytest.raises(ParseError):
        epoch_to_datetime("not-an-epoch")
