"""Logging filters for context injection.

This module provides filters that inject context variables into log records,
enabling correlation of logs across the attempts of one capture run.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

from stablesnap.__version__ import __version__

capture_id_var: ContextVar[Optional[str]] = ContextVar("capture_id", default=None)
attempt_var: ContextVar[Optional[int]] = ContextVar("attempt", default=None)


class ContextFilter(logging.Filter):
    """Logging filter that adds context variables to log records.

    This filter extracts values from context variables and adds them to
    log records, so every line emitted during a run carries the run id and
    the attempt number it belongs to.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record.

        Args:
            record: Log record to enhance

        Returns:
            Always True (doesn't filter out any records)
        """
        setattr(record, "capture_id", capture_id_var.get())
        setattr(record, "attempt", attempt_var.get())
        setattr(record, "sdk_name", "stablesnap")
        setattr(record, "sdk_version", __version__)

        return True


def set_capture_context(
    capture_id: Optional[str] = None,
    attempt: Optional[int] = None,
) -> None:
    """Set capture context variables."""
    if capture_id is not None:
        capture_id_var.set(capture_id)
    if attempt is not None:
        attempt_var.set(attempt)


def clear_capture_context() -> None:
    """Clear all capture context variables."""
    capture_id_var.set(None)
    attempt_var.set(None)
