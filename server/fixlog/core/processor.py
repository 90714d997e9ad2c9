"""Fix processor: normalizes, validates, dedupes and stores incoming fixes.

This is the core business logic. One call to ``ingest`` handles one HTTP
request end to end and is synchronous: it blocks on file locks, so the API
layer runs it in a worker thread.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable

import structlog

from fixlog.core.dedup import DedupKeyStore
from fixlog.core.errors import MalformedInputError, RecordRejected, StorageError
from fixlog.core.models import AckState, IngestResult
from fixlog.core.normalizer import decode_body, normalize_payload, resolve_device
from fixlog.core.validator import validate_record
from fixlog.storage.ack import AckTracker
from fixlog.storage.keys import RECENT_KEYS_FILE, FileKeyRepository
from fixlog.storage.ledger import LedgerWriter
from fixlog.storage.locks import FileDeviceLock
from fixlog.storage.retention import RetentionSweeper

if TYPE_CHECKING:
    from fixlog.config import AppConfig
    from fixlog.core.clock import Clock
    from fixlog.core.stats import ServerStats

log = structlog.get_logger()

DedupFactory = Callable[[Path], DedupKeyStore]


class FixProcessor:
    """Runs the ingestion pipeline for one request at a time per device."""

    def __init__(
        self,
        config: AppConfig,
        clock: Clock,
        stats: ServerStats,
        dedup_factory: DedupFactory | None = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._stats = stats
        self._base_dir = Path(config.storage.base_dir)
        self._sweeper = RetentionSweeper(config.ingest.retention_days)
        self._acks = AckTracker()
        self._ledger = LedgerWriter()
        self._dedup_factory = dedup_factory or self._file_dedup_store

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _file_dedup_store(self, device_dir: Path) -> DedupKeyStore:
        path = device_dir / RECENT_KEYS_FILE
        return DedupKeyStore(
            repository=FileKeyRepository(path),
            lock=FileDeviceLock(path),
            max_keys=self._config.ingest.recent_keys_max,
        )

    def device_dir(self, device: str) -> Path:
        return self._base_dir / device

    def _ensure_device_dir(self, device: str) -> Path:
        path = self.device_dir(device)
        try:
            path.mkdir(mode=0o775, parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError("cannot create device dir") from exc
        return path

    def ingest(self, body: bytes, explicit_device: str | None = None) -> IngestResult:
        """Process one request body. Raises FixlogError subclasses on fatal errors."""
        self._stats.record_request(len(body))
        try:
            payload = normalize_payload(decode_body(body))
        except MalformedInputError as exc:
            self._stats.record_request_rejected()
            log.warning("payload_rejected", error=exc.message, size=len(body))
            raise

        device = resolve_device(explicit_device, payload)
        now = self._clock.now()
        try:
            device_dir = self._ensure_device_dir(device)
        except StorageError:
            self._stats.record_request_rejected()
            log.error("device_dir_failed", device=device, exc_info=True)
            raise

        expired = self._sweeper.sweep(device_dir, now)
        if expired:
            self._stats.record_expired(expired)

        result = IngestResult(device=device, source=payload.source)
        storage_errors = 0

        try:
            with self._dedup_factory(device_dir) as store:
                # Acks are read under the dedup lock so they cannot regress.
                previous = self._acks.load(device_dir)
                max_ts = previous.last_ack_ts
                max_seq = previous.last_ack_seq
                try:
                    for raw in payload.records:
                        try:
                            record = validate_record(raw, now, self._config.ingest)
                        except RecordRejected as exc:
                            result.skipped_bad += 1
                            result.reject_reasons[exc.reason] = result.reject_reasons.get(exc.reason, 0) + 1
                            continue

                        key = record.key
                        if store.contains(key):
                            result.skipped_dup += 1
                            continue
                        store.mark_seen(key)

                        if not self._ledger.append(device_dir, record):
                            storage_errors += 1
                            result.skipped_bad += 1
                            continue

                        result.written += 1
                        store.append(key)
                        max_ts = max(max_ts, record.ts)
                        max_seq = max(max_seq, record.seq)
                finally:
                    # Keys of lines already appended are kept even if the batch aborts.
                    store.persist()
                current = AckState(last_ack_ts=max_ts, last_ack_seq=max_seq)
                self._acks.save(device_dir, previous, current)
        except StorageError:
            self._stats.record_request_rejected()
            log.error("dedup_state_failed", device=device, exc_info=True)
            raise

        result.acked_ts = current.last_ack_ts
        result.acked_seq = current.last_ack_seq

        if storage_errors:
            self._stats.record_storage_error(storage_errors)
        self._stats.record_batch(
            device, payload.source,
            received=len(payload.records),
            written=result.written,
            duplicate=result.skipped_dup,
            rejected=result.skipped_bad,
        )
        log.info("fixes_ingested", device=device, source=payload.source,
                 written=result.written, skipped_dup=result.skipped_dup,
                 skipped_bad=result.skipped_bad, acked_ts=result.acked_ts,
                 rejects=result.reject_reasons or None)
        return result
