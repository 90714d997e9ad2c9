"""Device lock implementations."""

from __future__ import annotations

import fcntl
import os
import threading
from pathlib import Path

import structlog

from fixlog.core.errors import StorageError

log = structlog.get_logger()


class FileDeviceLock:
    """Advisory ``flock`` held on a file inside the device directory.

    Works across threads and processes: every acquire opens its own file
    description, so two requests for the same device block each other even
    inside one worker.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._fd: int | None = None

    def acquire(self) -> None:
        try:
            fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o664)
        except OSError as exc:
            raise StorageError("cannot open recent keys") from exc
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as exc:
            os.close(fd)
            raise StorageError("cannot lock recent keys") from exc
        self._fd = fd

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)


class ThreadDeviceLock:
    """In-process lock, for stores that never touch the filesystem."""

    def __init__(self, lock: threading.Lock | None = None) -> None:
        self._lock = lock or threading.Lock()

    def acquire(self) -> None:
        self._lock.acquire()

    def release(self) -> None:
        self._lock.release()
