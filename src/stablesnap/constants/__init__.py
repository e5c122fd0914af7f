"""Constants module for stablesnap.

This module contains all constant values and enumerations used throughout
the package. It has no dependencies on other stablesnap modules.

Organization:
    - capture: Entry kinds, orchestrator states, exit codes
    - archive: Output container defaults
"""

from stablesnap.constants.capture import (
    CaptureState,
    EntryKind,
    ExitCode,
    LogFormat,
)
from stablesnap.constants.archive import (
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_OUTPUT_PATH,
    MIN_COMPRESSION_LEVEL,
    PARTIAL_SUFFIX,
)

__all__ = [
    "CaptureState",
    "EntryKind",
    "ExitCode",
    "LogFormat",
    "DEFAULT_COMPRESSION_LEVEL",
    "DEFAULT_OUTPUT_PATH",
    "MIN_COMPRESSION_LEVEL",
    "PARTIAL_SUFFIX",
]
