"""Tests for YAML + environment configuration loading."""

from __future__ import annotations

from fixlog.config import AppConfig, load_config


def test_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config == AppConfig()
    assert config.ingest.retention_days == 7
    assert config.ingest.recent_keys_max == 5000
    assert config.ingest.max_future_skew == 86400
    assert config.ingest.min_ts == 946684800


def test_yaml_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "storage:\n"
        "  base_dir: /srv/fixlog\n"
        "ingest:\n"
        "  retention_days: 30\n"
        "  unknown_key: 1\n"
        "auth:\n"
        "  token: s3cret\n"
    )
    config = load_config(path)
    assert config.storage.base_dir == "/srv/fixlog"
    assert config.ingest.retention_days == 30
    assert config.auth.token == "s3cret"
    assert not hasattr(config.ingest, "unknown_key")


def test_env_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("ingest:\n  recent_keys_max: 10\n")
    monkeypatch.setenv("FIXLOG_INGEST_RECENT_KEYS_MAX", "20")
    monkeypatch.setenv("FIXLOG_AUTH_TOKEN", "from-env")
    config = load_config(path)
    assert config.ingest.recent_keys_max == 20
    assert config.auth.token == "from-env"
