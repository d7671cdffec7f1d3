"""
Logging setup for the Service Tracker app.

Streamlit re-executes page scripts on every interaction, so configuration is
applied once per process unless ``force`` is passed.

Usage:
    from service_tracker.utils.logging import configure_logging

    configure_logging(level="INFO", json_logs=False)
    log = logging.getLogger(__name__)
    log.info("record created", extra={"record_id": "abc"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict

_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_configured = False


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as a JSON string, promoting ``extra`` fields."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _STANDARD_ATTRS and not key.startswith("_"):
            payload[key] = value
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(level: str = "INFO", json_logs: bool = False, force: bool = False) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g. "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit one JSON object per line instead of the console format.
    force : bool
        Reconfigure even if logging was already set up in this process.
    """
    global _configured
    if _configured and not force:
        return

    formatter_name = "json" if json_logs else "console"
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "level": level,
                }
            },
            "root": {"handlers": ["default"], "level": level},
        }
    )
    _configured = True


__all__ = ["configure_logging", "JsonFormatter"]
