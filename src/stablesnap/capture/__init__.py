"""Consistent capture of changing directory trees.

Components:
    - MetadataProber: describes one entry (lstat semantics)
    - TreeWalker: deterministic snapshot of a whole tree
    - StabilityVerifier: one before/read/after attempt and its verdict
    - ArchiveWriter: tar.zst output with atomic replacement
    - CaptureOrchestrator: retry state machine tying it all together
"""

from .prober import MetadataProber
from .walker import TreeWalker
from .verifier import StabilityVerifier
from .archive import ArchiveWriter
from .orchestrator import CaptureOrchestrator, capture

__all__ = [
    "MetadataProber",
    "TreeWalker",
    "StabilityVerifier",
    "ArchiveWriter",
    "CaptureOrchestrator",
    "capture",
]
