"""Configuration for permiso."""

from .settings import PermisoSettings, get_settings
from .logging_config import LoggingConfig, LogVerbosity, LogFormat, setup_logging

__all__ = [
    "PermisoSettings",
    "get_settings",
    "LoggingConfig",
    "LogVerbosity",
    "LogFormat",
    "setup_logging",
]
