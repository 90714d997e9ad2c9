"""Idempotency key tracking.

Devices resend whole batches when an upload times out, so every accepted
fix leaves its key in a capped FIFO per device. Capacity, not age, bounds
the set: the oldest keys fall out first.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING, Iterable

import structlog

if TYPE_CHECKING:
    from fixlog.storage.base import DeviceLock, KeyRepository

log = structlog.get_logger()


class RecentKeySet:
    """Ordered, duplicate-free set of at most ``max_keys`` keys."""

    def __init__(self, max_keys: int) -> None:
        if max_keys < 1:
            raise ValueError("max_keys must be positive")
        self._max = max_keys
        self._keys: OrderedDict[str, None] = OrderedDict()

    def load(self, lines: Iterable[str]) -> None:
        """Replace contents with the newest ``max_keys`` lines of a key file."""
        lines = list(lines)
        self._keys.clear()
        for line in lines[-self._max:]:
            key = line.strip()
            if key and key not in self._keys:
                self._keys[key] = None

    def append(self, key: str) -> None:
        if key in self._keys:
            return
        self._keys[key] = None
        while len(self._keys) > self._max:
            self._keys.popitem(last=False)

    def keys(self) -> list[str]:
        return list(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class DedupKeyStore:
    """Per-device recent keys, read and rewritten under one lock.

    Use as a context manager: entering takes the device lock and loads the
    persisted keys; leaving releases the lock. ``persist`` must be called
    inside the block for accepted keys to survive the request.
    """

    def __init__(self, repository: KeyRepository, lock: DeviceLock, max_keys: int) -> None:
        self._repository = repository
        self._lock = lock
        self._recent = RecentKeySet(max_keys)
        self._in_request: set[str] = set()
        self._locked = False

    def __enter__(self) -> DedupKeyStore:
        self._lock.acquire()
        self._locked = True
        try:
            self.load()
        except BaseException:
            self._release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._release()

    def _release(self) -> None:
        if self._locked:
            self._locked = False
            self._lock.release()

    def load(self) -> None:
        self._recent.load(self._repository.read_lines())
        self._in_request.clear()
        log.debug("recent_keys_loaded", count=len(self._recent))

    def contains(self, key: str) -> bool:
        return key in self._in_request or key in self._recent

    def mark_seen(self, key: str) -> None:
        """Remember a key for the rest of this request only."""
        self._in_request.add(key)

    def append(self, key: str) -> None:
        self._recent.append(key)

    def keys(self) -> list[str]:
        return self._recent.keys()

    def persist(self) -> None:
        self._repository.write_lines(self._recent.keys())
