"""
Logging configuration.

Two output formats, selected by LOG_FORMAT:
  - console: "[time] LEVEL logger message" lines for local development
  - json:    one JSON object per line for log aggregation

Application modules never configure handlers themselves; they only do
`logger = logging.getLogger(__name__)`. configure_logging() is called once
at startup (main.py lifespan, cli.main).
"""

import json
import logging
import logging.config
from datetime import datetime, timezone

from bookkeeping.config import settings

# LogRecord attributes that are not "extra" fields
_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    Emits timestamp, level, logger and message, plus every field passed
    through `extra=` (non-serializable values are stringified).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)


def get_logging_config(level: str | None = None, log_format: str | None = None) -> dict:
    """Build the dictConfig mapping for the requested level and format."""
    level = (level or settings.LOG_LEVEL).upper()
    log_format = log_format or ("console" if settings.DEBUG else settings.LOG_FORMAT)

    formatters = {
        "console": {
            "format": "[{asctime}] {levelname} {name} {message}",
            "style": "{",
        },
        "json": {
            "()": "bookkeeping.logging_config.JsonFormatter",
        },
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if log_format == "json" else "console",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            "bookkeeping": {"handlers": ["console"], "level": level, "propagate": False},
            # SQL statements only when DEBUG turns on engine echo
            "sqlalchemy.engine": {"level": "INFO" if settings.DEBUG else "WARNING"},
        },
    }


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    logging.config.dictConfig(get_logging_config(level, log_format))
