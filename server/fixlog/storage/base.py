"""Storage interfaces (ports) for per-device ingestion state."""

from __future__ import annotations

from typing import Protocol


class DeviceLock(Protocol):
    """Port: exclusive lock serializing ingestion for one device."""

    def acquire(self) -> None: ...

    def release(self) -> None: ...


class KeyRepository(Protocol):
    """Port: persisted list of recent idempotency keys, oldest first."""

    def read_lines(self) -> list[str]: ...

    def write_lines(self, lines: list[str]) -> None: ...
