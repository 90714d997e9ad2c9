"""Payload shape detection.

Devices post either a JSON array of fixes (ESP32 batch upload), a single
fix object, or a network-server uplink envelope (LoRa via TTN webhook).
Everything is reduced to a ``NormalizedPayload`` holding candidate records;
the candidates are validated one by one later.
"""

from __future__ import annotations

import json
import re
from typing import Any

from fixlog.core.errors import FormatError, MalformedInputError
from fixlog.core.models import SOURCE_ESP32, SOURCE_TTN, NormalizedPayload

DEFAULT_DEVICE = "default"

_DEVICE_STRIP_RE = re.compile(r"[^a-zA-Z0-9_\-]")
_RECORD_FIELDS = ("ts", "latE7", "lonE7")


def sanitize_device_id(raw: Any) -> str:
    if raw is None:
        return DEFAULT_DEVICE
    cleaned = _DEVICE_STRIP_RE.sub("", str(raw))
    return cleaned or DEFAULT_DEVICE


def decode_body(raw: bytes) -> Any:
    """Decode a request body into a JSON object or array."""
    if not raw or not raw.strip():
        raise MalformedInputError("empty body")
    try:
        value = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise MalformedInputError("invalid json") from exc
    if not isinstance(value, (dict, list)):
        raise MalformedInputError("invalid json")
    return value


def normalize_payload(value: Any) -> NormalizedPayload:
    if isinstance(value, dict):
        uplink = value.get("uplink_message")
        if isinstance(uplink, dict):
            return _normalize_uplink(value, uplink)
        if any(k in value for k in _RECORD_FIELDS):
            return NormalizedPayload(source=SOURCE_ESP32, records=[value])
        # Any other object is a batch keyed by position, e.g. {"0": {...}, "1": {...}}.
        return NormalizedPayload(source=SOURCE_ESP32, records=list(value.values()))
    if isinstance(value, list):
        return NormalizedPayload(source=SOURCE_ESP32, records=list(value))
    raise MalformedInputError("invalid json")


def _normalize_uplink(envelope: dict, uplink: dict) -> NormalizedPayload:
    payload = uplink.get("decoded_payload")
    if not isinstance(payload, dict):
        raise FormatError("TTN format: missing decoded_payload")

    hint = None
    ids = envelope.get("end_device_ids")
    if isinstance(ids, dict) and ids.get("device_id"):
        hint = str(ids["device_id"])
    return NormalizedPayload(source=SOURCE_TTN, records=[payload], device_hint=hint)


def resolve_device(explicit: str | None, payload: NormalizedPayload) -> str:
    """Pick the storage device id for a request.

    An explicit id wins. The envelope's device id only fills in when the
    explicit one is missing or sanitizes to the default.
    """
    device = sanitize_device_id(explicit)
    if device == DEFAULT_DEVICE and payload.source == SOURCE_TTN and payload.device_hint:
        hinted = _DEVICE_STRIP_RE.sub("", payload.device_hint)
        if hinted:
            device = hinted
    return device
