"""Type definitions for stablesnap.

This module provides the data model of a capture: filesystem entries, tree
snapshots, capture attempts, stability verdicts and run results.
"""

from .base import SnapBaseModel
from .entries import Entry, RelativePath, Signature, TreeSnapshot, arcname_of
from .capture import ArchiveStats, CaptureAttempt, CaptureResult, StabilityVerdict

__all__ = [
    'SnapBaseModel',
    'Entry',
    'RelativePath',
    'Signature',
    'TreeSnapshot',
    'arcname_of',
    'CaptureAttempt',
    'StabilityVerdict',
    'ArchiveStats',
    'CaptureResult',
]
