"""Ledger retention: drop day files older than the horizon."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

import structlog

from fixlog.storage.ledger import LEDGER_SUFFIX

log = structlog.get_logger()

SECONDS_PER_DAY = 86400

_LEDGER_STEM_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def _file_date_ts(path: Path) -> int | None:
    """UTC midnight of a ``YYYY-MM-DD.csv`` ledger, or None for other names."""
    if not _LEDGER_STEM_RE.fullmatch(path.stem):
        return None
    try:
        day = datetime.strptime(path.stem, "%Y-%m-%d")
    except ValueError:
        return None
    return int(day.replace(tzinfo=timezone.utc).timestamp())


class RetentionSweeper:
    def __init__(self, retention_days: int) -> None:
        self._retention_days = retention_days

    def cutoff(self, now: int) -> int:
        return now - self._retention_days * SECONDS_PER_DAY

    def sweep(self, device_dir: Path, now: int) -> int:
        """Delete expired ledgers. Best effort; returns the number removed."""
        cutoff = self.cutoff(now)
        deleted = 0
        for path in sorted(device_dir.glob(f"*{LEDGER_SUFFIX}")):
            day_ts = _file_date_ts(path)
            if day_ts is None or day_ts >= cutoff:
                continue
            try:
                path.unlink()
            except OSError:
                # Retried by the next request's sweep.
                log.debug("retention_delete_failed", path=str(path), exc_info=True)
                continue
            deleted += 1
        if deleted:
            log.info("retention_deleted", device_dir=str(device_dir), files=deleted)
        return deleted
