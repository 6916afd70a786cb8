"""Configuration package for the LMS."""

from lms.config.app_config import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    ExamConfig,
    ServerConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "ExamConfig",
    "ServerConfig",
    "clear_config_cache",
    "load_app_config",
]
