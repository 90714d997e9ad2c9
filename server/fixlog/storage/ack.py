"""Acknowledgment high-water marks.

Two scalar files per device: ``last_ack_ts.txt`` (max accepted ts) and
``last_ack.txt`` (max accepted seq, kept for older firmware). Both only
ever grow and are replaced atomically.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import structlog

from fixlog.core.models import AckState

log = structlog.get_logger()

ACK_TS_FILE = "last_ack_ts.txt"
ACK_SEQ_FILE = "last_ack.txt"


def atomic_write(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then rename over ``path``."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _read_scalar(path: Path) -> int:
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError:
        return 0
    return int(text) if text.isascii() and text.isdigit() else 0


class AckTracker:
    def load(self, device_dir: Path) -> AckState:
        return AckState(
            last_ack_ts=_read_scalar(device_dir / ACK_TS_FILE),
            last_ack_seq=_read_scalar(device_dir / ACK_SEQ_FILE),
        )

    def save(self, device_dir: Path, previous: AckState, current: AckState) -> None:
        """Persist each mark that strictly increased. Failures are logged only."""
        updates = (
            (ACK_TS_FILE, previous.last_ack_ts, current.last_ack_ts),
            (ACK_SEQ_FILE, previous.last_ack_seq, current.last_ack_seq),
        )
        for name, old, new in updates:
            if new <= old:
                continue
            try:
                atomic_write(device_dir / name, str(new))
            except OSError:
                log.error("ack_write_failed", file=name, value=new, exc_info=True)
