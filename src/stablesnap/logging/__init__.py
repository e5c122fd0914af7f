"""Logging infrastructure for stablesnap.

This module provides structured logging with JSON output and capture
context tracking (run id, attempt number).
"""

from stablesnap.logging.filters import (
    ContextFilter,
    clear_capture_context,
    set_capture_context,
)
from stablesnap.logging.logger import (
    CustomJsonFormatter,
    build_logging_config,
    get_logger,
    setup_logging,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "build_logging_config",
    "CustomJsonFormatter",
    "ContextFilter",
    "set_capture_context",
    "clear_capture_context",
]
