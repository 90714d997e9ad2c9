"""Health check and monitoring endpoints."""

from __future__ import annotations

import os
import shutil

from fastapi import APIRouter, Request

from fixlog.api.deps import get_processor, get_stats

router = APIRouter(prefix="/api/v1")

VERSION = "0.1.0"


@router.get("/health")
async def health(request: Request) -> dict:
    """Basic health check."""
    stats = get_stats(request)
    storage_path = get_processor(request).base_dir

    try:
        disk = shutil.disk_usage(storage_path if storage_path.exists() else ".")
        disk_free_gb = round(disk.free / (1024 ** 3), 1)
    except OSError:
        disk_free_gb = -1
    # Device dirs are created lazily; before the first upload check the parent.
    probe = storage_path if storage_path.exists() else storage_path.parent
    storage_writable = os.access(probe, os.W_OK)

    snapshot = stats.snapshot()
    return {
        "status": "ok",
        "version": VERSION,
        "uptime_seconds": snapshot["uptime_seconds"],
        "storage_writable": storage_writable,
        "disk_free_gb": disk_free_gb,
    }


@router.get("/stats")
async def stats(request: Request) -> dict:
    """Ingestion counters and active device counts.

    The ``active_devices`` section shows devices seen in the last N seconds,
    split by the source of their latest request (``esp32`` or ``ttn``).
    """
    return get_stats(request).snapshot()
