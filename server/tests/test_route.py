"""Tests for export window resolution and GeoJSON building."""

from __future__ import annotations

import pytest

from fixlog.config import ExportConfig
from fixlog.core.errors import InvalidWindowError
from fixlog.core.route import ExportWindow, build_route, resolve_window
from fixlog.storage.ledger import LedgerRow

NOW = 1_700_050_000
LIMITS = ExportConfig()


def test_absolute_window():
    w = resolve_window(NOW, "1700000000", "1700003600", None, LIMITS)
    assert w == ExportWindow(1700000000, 1700003600, "absolute")


def test_absolute_end_clamped_to_now():
    w = resolve_window(NOW, "1700000000", str(NOW + 999), None, LIMITS)
    assert w.to_ts == NOW


def test_absolute_window_capped_to_max_hours():
    w = resolve_window(NOW, "0", str(NOW), None, LIMITS)
    assert w.to_ts - w.from_ts == 168 * 3600


def test_hours_window_defaults():
    w = resolve_window(NOW, None, None, None, LIMITS)
    assert w == ExportWindow(NOW - 24 * 3600, NOW, "hours")


@pytest.mark.parametrize("hours,expected", [("6", 6), ("0", 24), ("-3", 24), ("abc", 24), ("1000", 168)])
def test_hours_parameter(hours, expected):
    w = resolve_window(NOW, None, None, hours, LIMITS)
    assert w.from_ts == NOW - expected * 3600


def test_partial_absolute_falls_back_to_hours():
    w = resolve_window(NOW, "1700000000", None, "2", LIMITS)
    assert w.mode == "hours"
    assert w.from_ts == NOW - 7200


def test_reversed_window_rejected():
    with pytest.raises(InvalidWindowError):
        resolve_window(NOW, "1700000100", "1700000100", None, LIMITS)


def _row(ts, lat, lon, **kw):
    return LedgerRow(seq=kw.pop("seq", 0), ts=ts, lat=lat, lon=lon,
                     channel=kw.pop("channel", "wifi"), net="unknown", **kw)


def test_empty_route():
    w = ExportWindow(0, 1, "hours")
    assert build_route([], "rover1", w) == {"type": "FeatureCollection", "features": []}


def test_route_skips_out_of_range_and_same_second_speed():
    w = ExportWindow(1700000000, 1700000100, "absolute")
    rows = [
        _row(1700000000, 40.0, -74.0),
        _row(1700000000, 40.001, -74.0),
        _row(1700000010, 95.0, -74.0),
    ]
    fc = build_route(rows, "rover1", w, include_points=True)
    track, p1, p2 = fc["features"]
    assert track["properties"]["points"] == 2
    assert "speed_mps" not in p2["properties"]
    assert p1["geometry"]["coordinates"] == [-74.0, 40.0]


def test_route_speed():
    w = ExportWindow(1700000000, 1700000100, "absolute")
    rows = [_row(1700000000, 0.0, 0.0, battery=10), _row(1700000010, 0.0, 0.001, flags=1)]
    _, p1, p2 = build_route(rows, "rover1", w, include_points=True)["features"]
    assert p1["properties"]["bat"] == 10
    assert p2["properties"]["flags"] == 1
    assert p2["properties"]["speed_mps"] == pytest.approx(11.12, abs=0.01)
    assert p2["properties"]["speed_kmh"] == pytest.approx(40.03, abs=0.02)


def test_oversized_absolute_timestamps_rejected():
    with pytest.raises(InvalidWindowError):
        resolve_window(NOW, "1" * 5000, str(NOW), None, LIMITS)
    with pytest.raises(InvalidWindowError):
        resolve_window(NOW, "1700000000", "9" * 5000, None, LIMITS)


def test_oversized_hours_falls_back_to_max():
    w = resolve_window(NOW, None, None, "9" * 30, LIMITS)
    assert w.from_ts == NOW - 168 * 3600
