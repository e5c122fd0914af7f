"""stablesnap: consistent snapshots of directory trees that keep changing.

>>> from stablesnap import capture, load_settings
>>> result = capture(load_settings(target_directory="/srv/data"))
>>> result.state
'done'
"""

from stablesnap.__version__ import __version__

from stablesnap.capture import (
    ArchiveWriter,
    CaptureOrchestrator,
    MetadataProber,
    StabilityVerifier,
    TreeWalker,
    capture,
)
from stablesnap.common.exceptions import (
    AccessError,
    ConfigError,
    ErrorCode,
    SnapshotError,
    WalkError,
    WriteError,
)
from stablesnap.constants import CaptureState, EntryKind, ExitCode
from stablesnap.settings import CaptureSettings, load_settings
from stablesnap.types import (
    CaptureAttempt,
    CaptureResult,
    Entry,
    StabilityVerdict,
    TreeSnapshot,
)

__all__ = [
    "__version__",

    "capture",
    "CaptureOrchestrator",
    "StabilityVerifier",
    "TreeWalker",
    "MetadataProber",
    "ArchiveWriter",

    "CaptureSettings",
    "load_settings",

    "Entry",
    "TreeSnapshot",
    "CaptureAttempt",
    "StabilityVerdict",
    "CaptureResult",
    "EntryKind",
    "CaptureState",
    "ExitCode",

    # Exceptions (public API)
    "SnapshotError",
    "ErrorCode",
    "ConfigError",
    "AccessError",
    "WalkError",
    "WriteError",
]
