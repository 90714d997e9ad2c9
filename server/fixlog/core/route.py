"""Route export: turns ledger rows into a GeoJSON FeatureCollection.

The track is one LineString (or a single Point when only one fix falls in
the window). Optionally every fix is also emitted as a Point feature with
its speed relative to the previous fix.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from fixlog.core.errors import InvalidWindowError

if TYPE_CHECKING:
    from fixlog.config import ExportConfig
    from fixlog.storage.ledger import LedgerRow

# Earth radius in meters (for Haversine).
_EARTH_R = 6_371_000.0


def _haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points."""
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return 2 * _EARTH_R * math.asin(math.sqrt(a))


@dataclass(frozen=True)
class ExportWindow:
    from_ts: int
    to_ts: int
    mode: str  # "absolute" or "hours"


def _digits(value: str | None) -> bool:
    return value is not None and value.isascii() and value.isdigit()


# Epoch seconds never need more digits than this.
_TS_MAX_DIGITS = 19


def resolve_window(now: int, begin_ts: str | None, end_ts: str | None,
                   hours: str | None, limits: ExportConfig) -> ExportWindow:
    """Work out the inclusive export window from query parameters.

    Both ``begin_ts`` and ``end_ts`` as digit strings select an absolute
    window; otherwise the last ``hours`` hours. The end never passes ``now``
    and the span never exceeds ``limits.max_hours``.
    """
    max_span = limits.max_hours * 3600
    if _digits(begin_ts) and _digits(end_ts):
        if len(begin_ts) > _TS_MAX_DIGITS or len(end_ts) > _TS_MAX_DIGITS:
            raise InvalidWindowError("invalid time window")
        from_ts, to_ts = int(begin_ts), int(end_ts)
        mode = "absolute"
    else:
        try:
            n_hours = int(hours) if hours is not None else limits.default_hours
        except ValueError:
            n_hours = limits.default_hours
        if n_hours <= 0:
            n_hours = limits.default_hours
        n_hours = min(n_hours, limits.max_hours)
        to_ts = now + limits.future_slack_seconds
        from_ts = now - n_hours * 3600
        mode = "hours"

    from_ts = max(from_ts, 0)
    to_ts = min(max(to_ts, 0), now)
    if to_ts <= from_ts:
        raise InvalidWindowError("invalid time window (end must be > begin)")
    if to_ts - from_ts > max_span:
        from_ts = to_ts - max_span
    return ExportWindow(from_ts=from_ts, to_ts=to_ts, mode=mode)


def _point_feature(row: LedgerRow, prev: LedgerRow | None) -> dict:
    props: dict = {"seq": row.seq, "ts": row.ts, "ch": row.channel, "net": row.net}
    if row.battery is not None:
        props["bat"] = row.battery
    if row.flags is not None:
        props["flags"] = row.flags
    if prev is not None:
        dt = row.ts - prev.ts
        if dt > 0:
            speed_mps = _haversine_m(prev.lat, prev.lon, row.lat, row.lon) / dt
            props["speed_mps"] = round(speed_mps, 2)
            props["speed_kmh"] = round(speed_mps * 3.6, 2)
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [row.lon, row.lat]},
        "properties": props,
    }


def build_route(rows: Iterable[LedgerRow], device: str, window: ExportWindow,
                include_points: bool = False) -> dict:
    coords: list[list[float]] = []
    points: list[dict] = []
    prev: LedgerRow | None = None

    for row in rows:
        if not (-90 <= row.lat <= 90 and -180 <= row.lon <= 180):
            continue
        coords.append([row.lon, row.lat])
        if include_points:
            points.append(_point_feature(row, prev))
        prev = row

    features: list[dict] = []
    if coords:
        if len(coords) >= 2:
            geometry = {"type": "LineString", "coordinates": coords}
        else:
            geometry = {"type": "Point", "coordinates": coords[0]}
        features.append({
            "type": "Feature",
            "geometry": geometry,
            "properties": {
                "device": device,
                "from_ts": window.from_ts,
                "to_ts": window.to_ts,
                "points": len(coords),
                "mode": window.mode,
            },
        })
    features.extend(points)
    return {"type": "FeatureCollection", "features": features}
