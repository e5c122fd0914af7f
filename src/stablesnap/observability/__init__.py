"""Observability utilities for stablesnap."""

from .context import CaptureContext, capture_scope, sanitize_extras

__all__ = [
    "CaptureContext",
    "capture_scope",
    "sanitize_extras",
]
