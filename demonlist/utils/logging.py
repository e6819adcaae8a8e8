"""
Structured logging for the demonlist core.

The CLI configures logging once through :func:`configure_logging`; library code
only ever calls :func:`get_logger`. Context travels as ``extra=`` attributes
(``command``, ``worker``, ``record``, ...), which the JSON formatter lifts into the
payload and the console formatter leaves out.

Credentials never reach a handler: :class:`RedactSecrets` masks any ``extra``
attribute named like a secret before formatting.

Usage:
    from demonlist.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=True)
    log = get_logger(__name__)
    log.info("[COMMAND DONE] ProcessSubmission", extra={"command": "ProcessSubmission"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

REDACTED = "***"
SECRET_ATTRS = frozenset({"password", "password_hash", "token", "secret_key"})

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def context_of(record: logging.LogRecord) -> Dict[str, Any]:
    """The ``extra=`` attributes of ``record``."""
    context = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and key != "extra"
    }
    # extra={"extra": {...}} nests the context one level deeper
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        context.update(nested)
    return context


def _json_formatter(record: logging.LogRecord) -> str:
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    payload.update(context_of(record))
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, context included."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class RedactSecrets(logging.Filter):
    """Mask secret-looking ``extra`` attributes in place."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in SECRET_ATTRS:
            if hasattr(record, name):
                setattr(record, name, REDACTED)
        nested = getattr(record, "extra", None)
        if isinstance(nested, dict) and SECRET_ATTRS & nested.keys():
            record.extra = {
                key: REDACTED if key in SECRET_ATTRS else value for key, value in nested.items()
            }
        return True


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging for a process.

    Parameters
    ----------
    level : str
        Level name for the demonlist loggers (e.g. "DEBUG", "INFO").
    json_logs : bool
        Emit one JSON object per record instead of the console format.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "redact": {"()": RedactSecrets},
            },
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "filters": ["redact"],
                    "level": level,
                }
            },
            "loggers": {
                # Pool maintenance chatter only matters when something breaks
                "psycopg.pool": {"level": "WARNING"},
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given name. If name is None, returns the root logger.
    """
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "context_of", "JsonFormatter", "RedactSecrets"]
