"""Route export endpoint (GeoJSON)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from fixlog.api.deps import get_clock, get_config, get_processor, require_token, requested_device
from fixlog.core.errors import DeviceNotFoundError
from fixlog.core.normalizer import sanitize_device_id
from fixlog.core.route import build_route, resolve_window
from fixlog.storage.ledger import LedgerReader

router = APIRouter(prefix="/api/v1")

_NO_CACHE = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/gps_geojson", dependencies=[Depends(require_token)])
async def get_route(
    request: Request,
    begin_ts: str | None = Query(default=None),
    end_ts: str | None = Query(default=None),
    hours: str | None = Query(default=None),
    points: str | None = Query(default=None),
) -> JSONResponse:
    """Return a device's track for a time window as a GeoJSON FeatureCollection.

    Coordinates are ``[lon, lat]``. ``points=1`` adds one Point feature per
    fix, with speed derived from the previous fix.
    """
    config = get_config(request)
    device = sanitize_device_id(requested_device(request))
    window = resolve_window(get_clock(request).now(), begin_ts, end_ts, hours, config.export)

    device_dir = get_processor(request).device_dir(device)
    if not device_dir.is_dir():
        raise DeviceNotFoundError()

    rows = LedgerReader().read_window(device_dir, window.from_ts, window.to_ts)
    geojson = build_route(rows, device, window, include_points=points == "1")
    return JSONResponse(content=geojson, headers=_NO_CACHE)
