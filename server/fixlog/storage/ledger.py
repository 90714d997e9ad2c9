"""Daily CSV ledgers.

One append-only file per device per UTC date: ``{base_dir}/{device}/YYYY-MM-DD.csv``.
The first line is ``LEDGER_HEADER``; each further line is one accepted fix.
"""

from __future__ import annotations

import fcntl
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

import structlog

if TYPE_CHECKING:
    from fixlog.core.models import FixRecord

log = structlog.get_logger()

LEDGER_HEADER = "seq,ts_iso,ts_epoch,latE7,lonE7,lat,lon,ch,net,bat,flags"
LEDGER_SUFFIX = ".csv"


def utc_date(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def ledger_path(device_dir: Path, ts: int) -> Path:
    return device_dir / f"{utc_date(ts)}{LEDGER_SUFFIX}"


def format_e7(value: int) -> str:
    """Render a degrees x 1e7 integer as decimal degrees with 7 fraction digits."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10_000_000)
    return f"{sign}{whole}.{frac:07d}"


def render_line(record: FixRecord) -> str:
    iso = datetime.fromtimestamp(record.ts, tz=timezone.utc).isoformat()
    fields = [
        str(record.seq),
        iso,
        str(record.ts),
        str(record.lat_e7),
        str(record.lon_e7),
        format_e7(record.lat_e7),
        format_e7(record.lon_e7),
        record.channel,
        record.net,
        "" if record.battery is None else str(record.battery),
        "" if record.flags is None else str(record.flags),
    ]
    return ",".join(fields) + "\n"


class LedgerWriter:
    """Appends fixes to the day file under an exclusive per-file lock."""

    def append(self, device_dir: Path, record: FixRecord) -> bool:
        """Append one fix. Returns False (never raises) if it was not written."""
        path = ledger_path(device_dir, record.ts)
        line = render_line(record).encode("utf-8")
        try:
            with open(path, "ab") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    # Header only when empty, checked under the lock.
                    if os.fstat(f.fileno()).st_size == 0:
                        if not f.write((LEDGER_HEADER + "\n").encode("utf-8")):
                            return False
                    written = f.write(line)
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError:
            log.error("ledger_write_failed", path=str(path), exc_info=True)
            return False
        return written > 0


@dataclass(frozen=True)
class LedgerRow:
    seq: int
    ts: int
    lat: float
    lon: float
    channel: str
    net: str
    battery: int | None = None
    flags: int | None = None


def _optional_int(value: str) -> int | None:
    return int(value) if value != "" else None


def parse_row(line: str) -> LedgerRow | None:
    cols = line.strip().split(",")
    if len(cols) < 8:
        return None
    try:
        return LedgerRow(
            seq=int(cols[0]),
            ts=int(cols[2]),
            lat=float(cols[5]),
            lon=float(cols[6]),
            channel=cols[7],
            net=cols[8] if len(cols) > 8 else "",
            battery=_optional_int(cols[9]) if len(cols) > 9 else None,
            flags=_optional_int(cols[10]) if len(cols) > 10 else None,
        )
    except ValueError:
        return None


class LedgerReader:
    """Reads ledger rows for an inclusive time window, in file order."""

    def dates_between(self, from_ts: int, to_ts: int) -> list[str]:
        start = datetime.fromtimestamp(from_ts, tz=timezone.utc).date()
        end = datetime.fromtimestamp(to_ts, tz=timezone.utc).date()
        days = (end - start).days
        return [(start + timedelta(days=i)).isoformat() for i in range(days + 1)]

    def read_window(self, device_dir: Path, from_ts: int, to_ts: int) -> Iterator[LedgerRow]:
        for date in self.dates_between(from_ts, to_ts):
            path = device_dir / f"{date}{LEDGER_SUFFIX}"
            if not path.exists():
                continue
            try:
                with open(path, encoding="utf-8") as f:
                    next(f, None)  # header
                    for line in f:
                        if not line.strip():
                            continue
                        row = parse_row(line)
                        if row is None or not from_ts <= row.ts <= to_ts:
                            continue
                        yield row
            except OSError:
                log.warning("ledger_read_failed", path=str(path), exc_info=True)
