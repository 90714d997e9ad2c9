"""Tests for payload shape detection and device id resolution."""

from __future__ import annotations

import sys

import pytest

from fixlog.core.errors import FormatError, MalformedInputError
from fixlog.core.normalizer import (
    decode_body,
    normalize_payload,
    resolve_device,
    sanitize_device_id,
)


def test_array_of_records():
    payload = normalize_payload([{"ts": 1}, {"ts": 2}, "junk"])
    assert payload.source == "esp32"
    assert payload.records == [{"ts": 1}, {"ts": 2}, "junk"]
    assert payload.device_hint is None


def test_single_record_is_wrapped():
    rec = {"ts": 1700000000, "latE7": 1, "lonE7": 2}
    payload = normalize_payload(rec)
    assert payload.source == "esp32"
    assert payload.records == [rec]


def test_object_keyed_by_position_is_a_batch():
    fix_a = {"ts": 1700000000, "latE7": 1, "lonE7": 2}
    fix_b = {"ts": 1700000010, "latE7": 3, "lonE7": 4}
    payload = normalize_payload({"0": fix_a, "1": fix_b})
    assert payload.source == "esp32"
    assert payload.records == [fix_a, fix_b]


def test_object_with_one_record_field_stays_single():
    payload = normalize_payload({"latE7": 1, "note": "x"})
    assert payload.records == [{"latE7": 1, "note": "x"}]


def test_uplink_envelope():
    envelope = {
        "end_device_ids": {"device_id": "tracker-01"},
        "uplink_message": {"decoded_payload": {"ts": 1, "latE7": 2, "lonE7": 3}},
    }
    payload = normalize_payload(envelope)
    assert payload.source == "ttn"
    assert payload.records == [{"ts": 1, "latE7": 2, "lonE7": 3}]
    assert payload.device_hint == "tracker-01"


def test_uplink_envelope_without_decoded_payload():
    with pytest.raises(FormatError):
        normalize_payload({"uplink_message": {"frm_payload": "AAAA"}})


@pytest.mark.parametrize("body", [b"", b"   \n", b"not json at all", b"42", b'"text"', b"\xff\xfe"])
def test_decode_body_rejects(body):
    with pytest.raises(MalformedInputError):
        decode_body(body)


def test_decode_body_rejects_deep_nesting():
    with pytest.raises(MalformedInputError, match="invalid json"):
        decode_body(b"[" * 200000)


@pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"),
                    reason="interpreter has no integer digit limit")
def test_decode_body_rejects_oversized_integer_literal():
    with pytest.raises(MalformedInputError, match="invalid json"):
        decode_body(b'{"ts": ' + b"9" * 5000 + b"}")


def test_decode_body_accepts_object_and_array():
    assert decode_body(b'{"ts": 1}') == {"ts": 1}
    assert decode_body(b"[]") == []


@pytest.mark.parametrize("raw,expected", [
    ("rover1", "rover1"),
    ("rover 1/../x", "rover1x"),
    ("../..", "default"),
    ("", "default"),
    (None, "default"),
    ("A_b-9", "A_b-9"),
])
def test_sanitize_device_id(raw, expected):
    assert sanitize_device_id(raw) == expected


def test_resolve_device_prefers_explicit():
    envelope = normalize_payload({
        "end_device_ids": {"device_id": "from-envelope"},
        "uplink_message": {"decoded_payload": {"ts": 1}},
    })
    assert resolve_device("rover1", envelope) == "rover1"
    assert resolve_device(None, envelope) == "from-envelope"
    assert resolve_device("default", envelope) == "from-envelope"


def test_resolve_device_sanitizes_envelope_hint():
    envelope = normalize_payload({
        "end_device_ids": {"device_id": "eui:70B3.D57E"},
        "uplink_message": {"decoded_payload": {"ts": 1}},
    })
    assert resolve_device(None, envelope) == "eui70B3D57E"

    unusable = normalize_payload({
        "end_device_ids": {"device_id": "::"},
        "uplink_message": {"decoded_payload": {"ts": 1}},
    })
    assert resolve_device(None, unusable) == "default"


def test_resolve_device_ignores_hint_for_direct_uploads():
    assert resolve_device(None, normalize_payload([{"ts": 1}])) == "default"
