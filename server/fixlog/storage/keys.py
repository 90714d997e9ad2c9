"""Recent idempotency key repositories."""

from __future__ import annotations

from pathlib import Path

from fixlog.core.errors import StorageError

RECENT_KEYS_FILE = "recent_keys.txt"


class FileKeyRepository:
    """Newline-delimited keys in ``recent_keys.txt``, rewritten in place.

    Callers hold the device lock around read and write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read_lines(self) -> list[str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError("cannot read recent keys") from exc
        return text.splitlines()

    def write_lines(self, lines: list[str]) -> None:
        content = "".join(f"{line}\n" for line in lines)
        try:
            with open(self._path, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
        except OSError as exc:
            raise StorageError("cannot write recent keys") from exc


class MemoryKeyRepository:
    def __init__(self, lines: list[str] | None = None) -> None:
        self.lines = list(lines or [])

    def read_lines(self) -> list[str]:
        return list(self.lines)

    def write_lines(self, lines: list[str]) -> None:
        self.lines = list(lines)
