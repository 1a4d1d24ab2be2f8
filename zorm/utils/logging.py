"""
Logging setup for zorm.

The library itself only logs: sessions write every statement at INFO on the
``"zorm"`` logger (with ``session_id`` and ``query`` extras) and the
connection factory reports connects at DEBUG. Applications, including the
``zorm`` CLI, call ``configure_logging`` once to install a root handler,
either as plain text lines or as one JSON object per record so query logs
can be shipped and filtered by session.

Usage:
    from zorm.utils.logging import configure_logging

    configure_logging(level="INFO", json_logs=True)
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _json_formatter(record: logging.LogRecord) -> str:
    """One JSON object per record; extras such as ``session_id`` become top-level keys."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(
        (key, val)
        for key, val in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    )
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def _root_config(level: str, formatter_name: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT, "datefmt": CONSOLE_DATEFMT},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "zorm": {
                "class": "logging.StreamHandler",
                "formatter": formatter_name,
                "level": level,
            }
        },
        "root": {"handlers": ["zorm"], "level": level},
    }


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Install the root handler.

    Parameters
    ----------
    level : str
        Level name for the root logger and its handler; ``"INFO"`` shows every
        statement a session runs, ``"WARNING"`` hides them.
    json_logs : bool
        Write JSON objects instead of text lines.
    force : bool
        Replace a root setup that is already in place. When False and the root
        logger has handlers, nothing changes.
    """
    if not force and logging.getLogger().handlers:
        return
    logging.config.dictConfig(_root_config(level, "json" if json_logs else "console"))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger by name; the root logger when ``name`` is None."""
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
