"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: FIXLOG_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class AuthConfig:
    token: str = "CHANGE_ME_LONG_RANDOM_TOKEN"


@dataclass
class StorageConfig:
    base_dir: str = "data"


@dataclass
class IngestConfig:
    retention_days: int = 7
    recent_keys_max: int = 5000
    max_future_skew: int = 86400  # seconds
    min_ts: int = 946684800  # 2000-01-01T00:00:00Z


@dataclass
class ExportConfig:
    max_hours: int = 168
    default_hours: int = 24
    future_slack_seconds: int = 7200


@dataclass
class StatsConfig:
    active_window_seconds: float = 120.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = ("server", "auth", "storage", "ingest", "export", "stats", "logging")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "FIXLOG_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "FIXLOG_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "FIXLOG_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "FIXLOG_AUTH_TOKEN": lambda v: setattr(config.auth, "token", v),
        "FIXLOG_STORAGE_BASE_DIR": lambda v: setattr(config.storage, "base_dir", v),
        "FIXLOG_INGEST_RETENTION_DAYS": lambda v: setattr(config.ingest, "retention_days", int(v)),
        "FIXLOG_INGEST_RECENT_KEYS_MAX": lambda v: setattr(config.ingest, "recent_keys_max", int(v)),
        "FIXLOG_INGEST_MAX_FUTURE_SKEW": lambda v: setattr(config.ingest, "max_future_skew", int(v)),
        "FIXLOG_INGEST_MIN_TS": lambda v: setattr(config.ingest, "min_ts", int(v)),
        "FIXLOG_EXPORT_MAX_HOURS": lambda v: setattr(config.export, "max_hours", int(v)),
        "FIXLOG_EXPORT_DEFAULT_HOURS": lambda v: setattr(config.export, "default_hours", int(v)),
        "FIXLOG_STATS_ACTIVE_WINDOW": lambda v: setattr(config.stats, "active_window_seconds", float(v)),
        "FIXLOG_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "FIXLOG_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path(os.environ.get("FIXLOG_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section_name in _SECTIONS:
            section = getattr(config, section_name)
            for k, v in (raw.get(section_name) or {}).items():
                if hasattr(section, k):
                    setattr(section, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
