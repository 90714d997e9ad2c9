"""Request dependencies shared by the API routers."""

from __future__ import annotations

import hmac

from fastapi import Request

from fixlog.config import AppConfig
from fixlog.core.clock import Clock
from fixlog.core.errors import AuthError
from fixlog.core.processor import FixProcessor
from fixlog.core.stats import ServerStats


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_processor(request: Request) -> FixProcessor:
    return request.app.state.processor


def get_stats(request: Request) -> ServerStats:
    return request.app.state.stats


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def require_token(request: Request) -> None:
    """Reject the request unless X-API-Token matches the configured token."""
    expected = get_config(request).auth.token
    supplied = request.headers.get("x-api-token", "")
    if not hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8")):
        get_stats(request).record_request_rejected()
        raise AuthError()


def requested_device(request: Request) -> str | None:
    """Device id from ``?device=`` or the X-Device-Id header, unsanitized."""
    return request.query_params.get("device") or request.headers.get("x-device-id")
