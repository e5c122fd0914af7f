"""Settings module providing configuration management for stablesnap.

Settings are built on Pydantic Settings, so every value is type checked and
range validated before a capture starts.

Configuration Sources (precedence order):
    1. Explicit overrides (CLI options)
    2. Environment Variables, prefixed ``STABLESNAP_``
    3. ``.env`` file in the working directory
    4. Default Values in code

Quick Start:
    >>> from stablesnap.settings import load_settings
    >>>
    >>> settings = load_settings(target_directory="/srv/data")
    >>> settings.max_retries
    5
"""

from .base import SnapBaseSettings
from .capture import CaptureSettings, load_settings

__all__ = [
    "SnapBaseSettings",
    "CaptureSettings",
    "load_settings",
]
