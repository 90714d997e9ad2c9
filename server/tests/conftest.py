"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from fixlog.config import AppConfig
from fixlog.core.clock import FixedClock
from fixlog.core.processor import FixProcessor
from fixlog.core.stats import ServerStats
from fixlog.main import create_app

# 2023-11-15T12:06:40Z, a few hours after the fixes used throughout the tests.
NOW = 1_700_050_000
TOKEN = "test-token"


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def config(tmp_path):
    """App config pointing at a temp directory."""
    config = AppConfig()
    config.storage.base_dir = str(tmp_path / "data")
    config.auth.token = TOKEN
    config.logging.level = "warning"
    return config


@pytest.fixture
def data_dir(config):
    return Path(config.storage.base_dir)


@pytest.fixture
def stats(config):
    return ServerStats(active_window_seconds=config.stats.active_window_seconds)


@pytest.fixture
def processor(config, clock, stats):
    return FixProcessor(config=config, clock=clock, stats=stats)


@pytest.fixture
def app(config, clock):
    return create_app(config, clock)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-API-Token": TOKEN},
    ) as c:
        yield c
