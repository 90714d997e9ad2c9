"""Fix ingestion endpoint.

This is the thin FastAPI adapter. It authenticates, reads the raw body and
hands it to the processor, which does all parsing and persistence.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from fixlog.api.deps import get_processor, require_token, requested_device

router = APIRouter(prefix="/api/v1")


@router.post("/gps_batch", dependencies=[Depends(require_token)])
async def receive_fixes(request: Request) -> JSONResponse:
    """Receive GPS fixes from a device or a network-server webhook.

    Accepts a JSON array of fixes, a single fix object, or a TTN uplink
    envelope carrying ``uplink_message.decoded_payload``.
    """
    processor = get_processor(request)
    body = await request.body()

    # File locks block; keep them off the event loop.
    result = await run_in_threadpool(processor.ingest, body, requested_device(request))
    return JSONResponse(content=result.to_dict())
