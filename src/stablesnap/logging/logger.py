"""Core logging setup and configuration.

This module wires structured JSON logging with context propagation and
OpenTelemetry correlation while keeping configuration declarative via
``logging.config.dictConfig``. A plain text layout is available for
interactive use.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Set, Union

from stablesnap.constants import LogFormat

TEXT_FORMAT = "%(asctime)s [%(name)s/%(levelname)s]: %(message)s"
TEXT_DATE_FORMAT = "[%Y-%m-%d][%H:%M:%S]"


def _build_reserved_keys() -> Set[str]:
    """Collect standard ``LogRecord`` attributes to avoid duplicating them."""
    probe = logging.LogRecord(
        name="stablesnap.probe",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="",
        args=(),
        exc_info=None,
    )
    reserved = set(probe.__dict__.keys())
    reserved.update({"asctime", "message"})
    return reserved


_RESERVED_LOG_RECORD_KEYS = _build_reserved_keys()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class CustomJsonFormatter(logging.Formatter):
    """JSON formatter that enriches log entries with context and trace data."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {}

        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_RECORD_KEYS and key not in log_record:
                log_record[key] = value

        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()

        if hasattr(record, "otelTraceID"):
            log_record["trace_id"] = record.otelTraceID

        if hasattr(record, "otelSpanID"):
            log_record["span_id"] = record.otelSpanID

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def build_logging_config(
    level: str = "INFO",
    fmt: Union[str, LogFormat] = LogFormat.JSON,
) -> Dict[str, Any]:
    """Build the ``dictConfig`` payload used by :func:`setup_logging`."""
    formatter = LogFormat(fmt).value
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            LogFormat.JSON.value: {
                "()": "stablesnap.logging.logger.CustomJsonFormatter",
            },
            LogFormat.TEXT.value: {
                "format": TEXT_FORMAT,
                "datefmt": TEXT_DATE_FORMAT,
            },
        },
        "filters": {
            "snap_context": {
                "()": "stablesnap.logging.filters.ContextFilter",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level.upper(),
                "formatter": formatter,
                "filters": ["snap_context"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {
            "level": level.upper(),
            "handlers": ["console"],
        },
    }


def setup_logging(level: str = "INFO", fmt: Union[str, LogFormat] = LogFormat.JSON) -> None:
    """Configure logging backed by ``logging.config.dictConfig``.

    Args:
        level: Base log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: ``json`` for structured lines, ``text`` for human-readable ones.
    """
    logging.config.dictConfig(build_logging_config(level, fmt))
