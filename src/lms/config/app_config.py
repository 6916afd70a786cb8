"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is absent.

Environment overrides:
- LMS_CONFIG_FILE: alternate YAML file
- LMS_DATA_DIR: base data directory (database lives under it)
- LMS_DB_PATH: explicit database file

Usage:
    from lms.config.app_config import load_app_config

    config = load_app_config()
    timeout = config.auth.session_timeout_minutes
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")


@dataclass
class DatabaseConfig:
    """SQLite database location."""

    path: str = "data/db/lms.db"

    def resolve_path(self) -> Path:
        """Resolve the database path, honouring LMS_DB_PATH / LMS_DATA_DIR."""
        explicit = os.environ.get("LMS_DB_PATH")
        if explicit:
            return Path(explicit)
        data_dir = os.environ.get("LMS_DATA_DIR")
        if data_dir:
            return Path(data_dir) / "db" / "lms.db"
        return Path(self.path)


@dataclass
class AuthConfig:
    """Login session settings."""

    session_timeout_minutes: int = 5  # inactivity window
    session_max_hours: int = 12  # absolute lifetime of a token
    bcrypt_rounds: int = 12


@dataclass
class ExamConfig:
    """Exam-taking defaults."""

    default_duration_minutes: int = 60
    autosave_debounce_seconds: float = 1.0
    low_time_warning_seconds: int = 300


@dataclass
class ServerConfig:
    """HTTP server settings for `lms serve`."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    exam: ExamConfig = field(default_factory=ExamConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {"path": "data/db/lms.db"},
        "auth": {
            "session_timeout_minutes": 5,
            "session_max_hours": 12,
            "bcrypt_rounds": 12,
        },
        "exam": {
            "default_duration_minutes": 60,
            "autosave_debounce_seconds": 1.0,
            "low_time_warning_seconds": 300,
        },
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
            "cors_origins": ["*"],
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    db_data = data.get("database") or {}
    auth_data = data.get("auth") or {}
    exam_data = data.get("exam") or {}
    server_data = data.get("server") or {}

    database = DatabaseConfig(path=db_data.get("path", "data/db/lms.db"))
    auth = AuthConfig(
        session_timeout_minutes=int(auth_data.get("session_timeout_minutes", 5)),
        session_max_hours=int(auth_data.get("session_max_hours", 12)),
        bcrypt_rounds=int(auth_data.get("bcrypt_rounds", 12)),
    )
    exam = ExamConfig(
        default_duration_minutes=int(exam_data.get("default_duration_minutes", 60)),
        autosave_debounce_seconds=float(exam_data.get("autosave_debounce_seconds", 1.0)),
        low_time_warning_seconds=int(exam_data.get("low_time_warning_seconds", 300)),
    )
    server = ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=int(server_data.get("port", 8000)),
        cors_origins=list(server_data.get("cors_origins", ["*"])),
    )

    return AppConfig(database=database, auth=auth, exam=exam, server=server)


def _config_file() -> Path:
    override = os.environ.get("LMS_CONFIG_FILE")
    return Path(override) if override else CONFIG_FILE


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    config_file = _config_file()
    data: dict[str, Any]

    if config_file.exists():
        logger.debug("loading_app_config", source=str(config_file))
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
