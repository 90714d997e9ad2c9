"""LoRa uplink payload codec.

The tracker sends a fixed 13-byte frame, all fields big-endian:

    bytes 0-3   ts     uint32, epoch seconds
    bytes 4-7   latE7  int32, degrees x 1e7
    bytes 8-11  lonE7  int32, degrees x 1e7
    byte  12    bat    uint8, percent

``decode_uplink`` yields the same fields the batch endpoint accepts, so the
network server's decoded_payload can be posted unchanged.
"""

from __future__ import annotations

import struct

import structlog

from fixlog.core.errors import DecodeError
from fixlog.core.models import CHANNEL_LORA

log = structlog.get_logger()

_FRAME = struct.Struct(">IiiB")
FRAME_SIZE = _FRAME.size  # 13


def decode_uplink(payload: bytes) -> dict:
    if len(payload) != FRAME_SIZE:
        raise DecodeError(f"Expected {FRAME_SIZE} bytes, got {len(payload)}")
    ts, lat_e7, lon_e7, bat = _FRAME.unpack(payload)

    # Out-of-range values still decode; the validator rejects them later.
    if not -900_000_000 <= lat_e7 <= 900_000_000:
        log.warning("uplink_latitude_out_of_range", lat=lat_e7 / 1e7)
    if not -1_800_000_000 <= lon_e7 <= 1_800_000_000:
        log.warning("uplink_longitude_out_of_range", lon=lon_e7 / 1e7)
    if bat > 100:
        log.warning("uplink_battery_over_100", bat=bat)

    return {"ts": ts, "latE7": lat_e7, "lonE7": lon_e7, "bat": bat, "ch": CHANNEL_LORA}


def encode_uplink(ts: int, lat_e7: int, lon_e7: int, bat: int) -> bytes:
    return _FRAME.pack(ts, lat_e7, lon_e7, bat)
