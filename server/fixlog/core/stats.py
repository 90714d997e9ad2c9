"""Server statistics and active-device tracking.

Tracks in-memory counters and a sliding window of recently active devices.
No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class DeviceActivity:
    """Tracks a single device's recent activity."""
    last_seen: float          # time.monotonic() timestamp
    source: str               # "esp32" or "ttn"
    fixes_written: int = 0


class ServerStats:
    """Thread-safe ingestion statistics.

    A device is "active" if its last ingestion request landed within
    ``active_window_seconds`` (default 120s). It is counted under the source
    of that last request, so a node switching from Wi-Fi upload to LoRa
    moves from ``esp32`` to ``ttn``.
    """

    def __init__(self, active_window_seconds: float = 120.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.requests_received: int = 0
        self.requests_rejected: int = 0
        self.bytes_received: int = 0
        self.fixes_received: int = 0
        self.fixes_written: int = 0
        self.fixes_duplicate: int = 0
        self.fixes_rejected: int = 0
        self.storage_errors: int = 0
        self.ledgers_expired: int = 0

        # Device tracking: device_id -> DeviceActivity
        self._devices: dict[str, DeviceActivity] = {}

    def record_request(self, size_bytes: int) -> None:
        with self._lock:
            self.requests_received += 1
            self.bytes_received += size_bytes

    def record_request_rejected(self) -> None:
        with self._lock:
            self.requests_rejected += 1

    def record_batch(self, device_id: str, source: str, *, received: int,
                     written: int, duplicate: int, rejected: int) -> None:
        """Record the outcome of one ingestion request."""
        now = time.monotonic()
        with self._lock:
            self.fixes_received += received
            self.fixes_written += written
            self.fixes_duplicate += duplicate
            self.fixes_rejected += rejected
            dev = self._devices.get(device_id)
            if dev is None:
                self._devices[device_id] = DeviceActivity(
                    last_seen=now, source=source, fixes_written=written,
                )
            else:
                dev.last_seen = now
                dev.source = source
                dev.fixes_written += written

    def record_storage_error(self, count: int = 1) -> None:
        with self._lock:
            self.storage_errors += count

    def record_expired(self, count: int) -> None:
        with self._lock:
            self.ledgers_expired += count

    def _prune_stale_devices(self, now: float) -> None:
        """Remove devices not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [did for did, dev in self._devices.items() if dev.last_seen < cutoff]
        for did in stale:
            del self._devices[did]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_devices(now_mono)

            by_source: dict[str, int] = {"esp32": 0, "ttn": 0}
            for dev in self._devices.values():
                by_source[dev.source] = by_source.get(dev.source, 0) + 1

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "requests_received": self.requests_received,
                "requests_rejected": self.requests_rejected,
                "bytes_received": self.bytes_received,
                "fixes_received": self.fixes_received,
                "fixes_written": self.fixes_written,
                "fixes_duplicate": self.fixes_duplicate,
                "fixes_rejected": self.fixes_rejected,
                "storage_errors": self.storage_errors,
                "ledgers_expired": self.ledgers_expired,
                "active_devices": {
                    "total": len(self._devices),
                    **by_source,
                    "window_seconds": self._active_window,
                },
            }
