"""Types describing capture attempts and their outcome."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from pydantic import Field

from stablesnap.constants import CaptureState
from stablesnap.types.base import SnapBaseModel
from stablesnap.types.entries import RelativePath, TreeSnapshot, arcname_of


@dataclass
class CaptureAttempt:
    """One full before/read/after pass over the tree.

    The attempt exclusively owns its content buffers. ``release`` drops them
    so a discarded attempt leaves nothing behind for the next iteration.

    Attributes:
        number: 1-based attempt number within the run
        before: Snapshot taken before any content was read
        contents: File contents read during this attempt, keyed by path
        unread: Files scheduled for reading that could not be read cleanly
        after: Snapshot taken after all reads finished
    """

    number: int
    before: TreeSnapshot
    contents: Dict[RelativePath, bytes] = field(default_factory=dict)
    unread: Set[RelativePath] = field(default_factory=set)
    after: Optional[TreeSnapshot] = None
    released: bool = False

    @property
    def bytes_held(self) -> int:
        return sum(len(data) for data in self.contents.values())

    def release(self) -> None:
        self.contents = {}
        self.unread = set()
        self.released = True


class StabilityVerdict(SnapBaseModel):
    """Result of comparing the before and after snapshots of an attempt.

    Either stable, or unstable carrying the offending paths. The path lists
    are diagnostic only; retry logic never looks at them.
    """
    stable: bool
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    changed: List[str] = Field(default_factory=list)
    unread: List[str] = Field(default_factory=list)
    omitted: List[str] = Field(default_factory=list)

    @classmethod
    def stable_verdict(cls) -> "StabilityVerdict":
        return cls(stable=True)

    @classmethod
    def compare(
        cls,
        before: TreeSnapshot,
        after: TreeSnapshot,
        unread: Iterable[RelativePath] = (),
    ) -> "StabilityVerdict":
        """Compare two snapshots of the same root.

        Stable iff both hold exactly the same paths with identical kind, size
        and modification time, neither walk omitted anything, and no file
        failed to read.
        """
        before_paths = set(before.entries)
        after_paths = set(after.entries)

        added = sorted(after_paths - before_paths)
        removed = sorted(before_paths - after_paths)
        changed = sorted(
            path for path in before_paths & after_paths
            if before.entries[path].signature != after.entries[path].signature
        )
        omitted = sorted(before.omissions | after.omissions)
        unread_paths = sorted(set(unread))

        stable = not (added or removed or changed or omitted or unread_paths)
        if stable:
            return cls.stable_verdict()

        return cls(
            stable=False,
            added=[arcname_of(p) for p in added],
            removed=[arcname_of(p) for p in removed],
            changed=[arcname_of(p) for p in changed],
            unread=[arcname_of(p) for p in unread_paths],
            omitted=[arcname_of(p) for p in omitted],
        )

    @property
    def inaccessible_only(self) -> bool:
        """True when unstable only because entries could not be probed or read."""
        return not self.stable and not (self.added or self.removed or self.changed)

    @property
    def offending_paths(self) -> List[str]:
        return sorted(set(self.added + self.removed + self.changed + self.unread + self.omitted))


class ArchiveStats(SnapBaseModel):
    """Counts describing a written archive."""
    files: int = 0
    directories: int = 0
    symlinks: int = 0
    content_bytes: int = 0
    archive_bytes: int = 0


class CaptureResult(SnapBaseModel):
    """Terminal outcome of a capture run.

    Attributes:
        state: DONE, EXHAUSTED or CANCELLED
        attempts: Number of attempts made
        output_path: Archive location, set only when DONE
        stats: Archive statistics, set only when DONE
        verdict: Verdict of the last attempt made, if any
    """
    state: CaptureState
    attempts: int = 0
    output_path: Optional[Path] = None
    stats: Optional[ArchiveStats] = None
    verdict: Optional[StabilityVerdict] = None

    @property
    def succeeded(self) -> bool:
        return self.state == CaptureState.DONE

    @property
    def offending_paths(self) -> List[str]:
        if self.verdict is None:
            return []
        return self.verdict.offending_paths
