"""Fix record validation.

Turns one loosely typed candidate (numbers may arrive as strings, floats or
milliseconds) into a strict ``FixRecord`` or raises ``RecordRejected``.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Any

from fixlog.core.errors import RecordRejected
from fixlog.core.models import CHANNEL_LORA, CHANNEL_WIFI, FixRecord

if TYPE_CHECKING:
    from fixlog.config import IngestConfig

REASON_BAD_FIELD = "missing-or-non-integer-field"
REASON_TS_RANGE = "timestamp-out-of-range"
REASON_LAT_RANGE = "latitude-out-of-range"
REASON_LON_RANGE = "longitude-out-of-range"

LAT_E7_LIMIT = 900_000_000
LON_E7_LIMIT = 1_800_000_000

# Anything above this is a millisecond epoch (2e10 s is around year 2600).
MS_EPOCH_THRESHOLD = 20_000_000_000

NET_MAX_LEN = 64

# Enough for any signed 64-bit value; longer integer strings are rejected.
INT_STR_MAX_LEN = 20

_INT_STR_RE = re.compile(r"[+-]?[0-9]+")
_NET_STRIP_RE = re.compile(r'[,"\x00-\x1f\x7f]')


def coerce_int(value: Any) -> int | None:
    """Strict integer coercion. Returns None for anything not integer-like."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        s = value.strip()
        if len(s) <= INT_STR_MAX_LEN and _INT_STR_RE.fullmatch(s):
            return int(s)
    return None


def normalize_epoch_seconds(ts: int) -> int:
    if ts > MS_EPOCH_THRESHOLD:
        # round half up; ts is positive here
        return (ts + 500) // 1000
    return ts


def _clean_net(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return "unknown"
    return _NET_STRIP_RE.sub("", str(value))[:NET_MAX_LEN]


def _channel(value: Any) -> str:
    if isinstance(value, str) and value.lower() == CHANNEL_LORA:
        return CHANNEL_LORA
    return CHANNEL_WIFI


def validate_record(raw: Any, now: int, limits: IngestConfig) -> FixRecord:
    if not isinstance(raw, dict):
        raise RecordRejected(REASON_BAD_FIELD)

    ts = coerce_int(raw.get("ts"))
    lat_e7 = coerce_int(raw.get("latE7"))
    lon_e7 = coerce_int(raw.get("lonE7"))
    if ts is None or lat_e7 is None or lon_e7 is None:
        raise RecordRejected(REASON_BAD_FIELD)

    ts = normalize_epoch_seconds(ts)
    if ts < max(limits.min_ts, 0) or ts > now + limits.max_future_skew:
        raise RecordRejected(REASON_TS_RANGE)
    if not -LAT_E7_LIMIT <= lat_e7 <= LAT_E7_LIMIT:
        raise RecordRejected(REASON_LAT_RANGE)
    if not -LON_E7_LIMIT <= lon_e7 <= LON_E7_LIMIT:
        raise RecordRejected(REASON_LON_RANGE)

    seq = coerce_int(raw.get("seq"))

    battery = coerce_int(raw.get("bat"))
    if battery is not None:
        battery = min(max(battery, 0), 100)

    flags = coerce_int(raw.get("flags"))
    if flags is not None:
        flags &= 0xFF

    return FixRecord(
        ts=ts,
        lat_e7=lat_e7,
        lon_e7=lon_e7,
        seq=seq if seq is not None else 0,
        channel=_channel(raw.get("ch")),
        net=_clean_net(raw.get("net", "unknown")),
        battery=battery,
        flags=flags,
    )
