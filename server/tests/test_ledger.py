"""Tests for daily ledger rendering, appending and reading."""

from __future__ import annotations

import pytest

from fixlog.core.models import FixRecord
from fixlog.storage.ledger import (
    LEDGER_HEADER,
    LedgerReader,
    LedgerWriter,
    format_e7,
    ledger_path,
    parse_row,
    render_line,
)


@pytest.mark.parametrize("value,expected", [
    (407128000, "40.7128000"),
    (-740060000, "-74.0060000"),
    (0, "0.0000000"),
    (-5, "-0.0000005"),
    (900000000, "90.0000000"),
    (-1800000000, "-180.0000000"),
])
def test_format_e7(value, expected):
    assert format_e7(value) == expected


def test_render_line_columns():
    rec = FixRecord(ts=1_700_000_000, lat_e7=407128000, lon_e7=-740060000,
                    seq=4, channel="lora", net="ttn", battery=55, flags=3)
    line = render_line(rec)
    assert line.endswith("\n")
    assert line.rstrip("\n").split(",") == [
        "4", "2023-11-14T22:13:20+00:00", "1700000000", "407128000", "-740060000",
        "40.7128000", "-74.0060000", "lora", "ttn", "55", "3",
    ]


def test_render_line_empty_optionals():
    rec = FixRecord(ts=1_700_000_000, lat_e7=1, lon_e7=2)
    assert render_line(rec).rstrip("\n").split(",")[-2:] == ["", ""]


def test_append_writes_header_once(tmp_path):
    writer = LedgerWriter()
    a = FixRecord(ts=1_700_000_000, lat_e7=1, lon_e7=2)
    b = FixRecord(ts=1_700_000_060, lat_e7=3, lon_e7=4)
    assert writer.append(tmp_path, a)
    assert writer.append(tmp_path, b)

    path = tmp_path / "2023-11-14.csv"
    assert ledger_path(tmp_path, a.ts) == path
    lines = path.read_text().splitlines()
    assert lines[0] == LEDGER_HEADER
    assert len(lines) == 3


def test_append_splits_by_utc_date(tmp_path):
    writer = LedgerWriter()
    writer.append(tmp_path, FixRecord(ts=1_700_006_399, lat_e7=1, lon_e7=1))  # 23:59:59
    writer.append(tmp_path, FixRecord(ts=1_700_006_400, lat_e7=1, lon_e7=1))  # 00:00:00
    assert sorted(p.name for p in tmp_path.iterdir()) == ["2023-11-14.csv", "2023-11-15.csv"]


def test_append_failure_returns_false(tmp_path):
    missing = tmp_path / "no-such-device"
    assert LedgerWriter().append(missing, FixRecord(ts=1_700_000_000, lat_e7=1, lon_e7=2)) is False


def test_parse_row_tolerates_empty_optionals():
    row = parse_row("1,2023-11-14T22:13:20+00:00,1700000000,1,2,0.0000001,0.0000002,wifi,unknown,,\n")
    assert row is not None
    assert row.battery is None
    assert row.flags is None
    assert parse_row("garbage") is None
    assert parse_row(LEDGER_HEADER) is None


def test_read_window_filters_exactly(tmp_path):
    writer = LedgerWriter()
    for ts in (1_700_000_000, 1_700_000_100, 1_700_000_200, 1_700_100_000):
        writer.append(tmp_path, FixRecord(ts=ts, lat_e7=10, lon_e7=20, battery=50))

    reader = LedgerReader()
    rows = list(reader.read_window(tmp_path, 1_700_000_100, 1_700_100_000))
    assert [r.ts for r in rows] == [1_700_000_100, 1_700_000_200, 1_700_100_000]
    assert rows[0].battery == 50
    assert rows[0].lat == pytest.approx(0.000001)


def test_dates_between_spans_each_utc_day():
    reader = LedgerReader()
    assert reader.dates_between(1_700_000_000, 1_700_200_000) == [
        "2023-11-14", "2023-11-15", "2023-11-16", "2023-11-17",
    ]
