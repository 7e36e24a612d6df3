"""Logging configuration for permiso.

Applies a single ``dictConfig`` with a console handler. Verbosity picks the
effective level; asyncpg stays at WARNING unless SQL logging is enabled.
The detailed and json formats render the fields @operation attaches to
failure records, such as operation, tenant_id and entity_ids.
Nothing here runs at import time; call ``setup_logging`` once at startup.
"""

import json
import logging
import logging.config
from enum import Enum
from typing import Any, Dict, Optional

from .settings import PermisoSettings, get_settings


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogVerbosity(str, Enum):
    """Log verbosity modes."""
    QUIET = "QUIET"      # Only errors and critical
    NORMAL = "NORMAL"    # Warnings and above
    VERBOSE = "VERBOSE"  # Info level logging
    DEBUG = "DEBUG"      # Full debug logging


class LogFormat(str, Enum):
    """Log format options."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


FORMAT_STRINGS = {
    LogFormat.SIMPLE: "%(asctime)s - %(levelname)s - %(message)s",
    LogFormat.DETAILED: (
        "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
        " [operation=%(operation)s tenant=%(tenant_id)s entities=%(entity_ids)s]"
    ),
}

# Extra fields attached by the @operation decorator
OPERATION_FIELDS = ("operation", "tenant_id", "request_id", "error_code", "entity_ids")
MISSING_FIELD = "-"


class OperationFieldsFilter(logging.Filter):
    """Give records logged outside an operation placeholder values for its fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in OPERATION_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, MISSING_FIELD)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record; operation fields are included when present."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        for key in OPERATION_FIELDS:
            value = getattr(record, key, None)
            if value is not None and value != MISSING_FIELD:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_log_level_from_verbosity(verbosity: str) -> str:
    """Map verbosity mode to log level."""
    verbosity_map = {
        LogVerbosity.QUIET: LogLevel.ERROR.value,
        LogVerbosity.NORMAL: LogLevel.WARNING.value,
        LogVerbosity.VERBOSE: LogLevel.INFO.value,
        LogVerbosity.DEBUG: LogLevel.DEBUG.value,
    }
    try:
        return verbosity_map[LogVerbosity(verbosity.upper())]
    except ValueError:
        return LogLevel.WARNING.value


class LoggingConfig:
    """Builds and applies the permiso logging configuration."""

    # Modules that should only log errors
    ERROR_ONLY_MODULES = [
        "asyncio",
    ]

    @classmethod
    def build(cls, settings: PermisoSettings) -> Dict[str, Any]:
        """Return the dictConfig mapping for ``settings``."""
        effective_log_level = get_log_level_from_verbosity(settings.log_verbosity)
        log_format = LogFormat(settings.log_format)
        if log_format is LogFormat.JSON:
            formatter: Dict[str, Any] = {"()": JsonFormatter}
        else:
            formatter = {"format": FORMAT_STRINGS[log_format]}
        formatter["datefmt"] = "%Y-%m-%d %H:%M:%S"

        logging_config: Dict[str, Any] = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": formatter,
            },
            "filters": {
                "operation_fields": {"()": OperationFieldsFilter},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": effective_log_level,
                    "formatter": "default",
                    "filters": ["operation_fields"],
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": effective_log_level,
                "handlers": ["console"],
            },
            "loggers": {
                "permiso": {
                    "level": settings.log_level,
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }

        for module in cls.ERROR_ONLY_MODULES:
            logging_config["loggers"][module] = {
                "level": "ERROR",
                "handlers": ["console"],
                "propagate": False,
            }

        if not settings.enable_sql_logging:
            logging_config["loggers"]["asyncpg"] = {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            }

        return logging_config

    @classmethod
    def configure(cls, settings: Optional[PermisoSettings] = None) -> None:
        """Configure logging from settings (defaults to ``get_settings()``)."""
        settings = settings or get_settings()
        logging.config.dictConfig(cls.build(settings))

        logger = logging.getLogger(__name__)
        logger.debug(f"Logging configured: verbosity={settings.log_verbosity}, format={settings.log_format}")


def setup_logging(settings: Optional[PermisoSettings] = None) -> None:
    """Setup logging configuration.

    This is the main entry point for configuring logging in an application
    that embeds permiso. It should be called once at startup.
    """
    LoggingConfig.configure(settings)
