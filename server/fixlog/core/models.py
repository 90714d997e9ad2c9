"""Core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CHANNEL_WIFI = "wifi"
CHANNEL_LORA = "lora"

SOURCE_ESP32 = "esp32"
SOURCE_TTN = "ttn"


@dataclass(frozen=True)
class FixRecord:
    ts: int
    lat_e7: int
    lon_e7: int
    seq: int = 0
    channel: str = CHANNEL_WIFI
    net: str = "unknown"
    battery: int | None = None
    flags: int | None = None

    @property
    def key(self) -> str:
        """Idempotency key: the physical observation, not its transport."""
        return f"{self.ts},{self.lat_e7},{self.lon_e7}"


@dataclass(frozen=True)
class NormalizedPayload:
    source: str
    records: list[Any]
    device_hint: str | None = None


@dataclass(frozen=True)
class AckState:
    last_ack_ts: int = 0
    last_ack_seq: int = 0


@dataclass
class IngestResult:
    device: str
    source: str
    acked_ts: int = 0
    acked_seq: int = 0
    written: int = 0
    skipped_dup: int = 0
    skipped_bad: int = 0
    reject_reasons: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "device": self.device,
            "source": self.source,
            "ackedTs": self.acked_ts,
            "ackedSeq": self.acked_seq,
            "written": self.written,
            "skipped_dup": self.skipped_dup,
            "skipped_bad": self.skipped_bad,
        }
