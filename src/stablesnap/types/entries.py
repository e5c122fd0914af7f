"""Filesystem entry and tree snapshot types.

An ``Entry`` describes one object below the capture root; a ``TreeSnapshot``
is the ordered result of one walk over the root.
"""

from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from pydantic import ConfigDict, Field

from stablesnap.constants import EntryKind
from stablesnap.types.base import SnapBaseModel

RelativePath = Tuple[str, ...]
Signature = Tuple[str, int, int]


def arcname_of(path: RelativePath) -> str:
    """Render a relative path as a POSIX archive member name."""
    return "/".join(path)


class Entry(SnapBaseModel):
    """Metadata of one filesystem object under the capture root.

    Attributes:
        path: Relative path as a tuple of segments, independent of the
            platform's separator.
        kind: File, directory or symlink leaf.
        size: Size in bytes as reported by ``lstat``.
        mtime_ns: Last modification time in integer nanoseconds.
        mode: Permission bits. Archived, but not a stability signal.
        link_target: Target string of a symlink, ``None`` otherwise.
    """
    model_config = ConfigDict(frozen=True)

    path: RelativePath
    kind: EntryKind
    size: int = Field(ge=0)
    mtime_ns: int
    mode: int = 0o644
    link_target: Optional[str] = None

    @property
    def signature(self) -> Signature:
        """The attributes whose change makes a capture unstable."""
        return (self.kind, self.size, self.mtime_ns)

    @property
    def arcname(self) -> str:
        return arcname_of(self.path)

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.kind == EntryKind.SYMLINK


class TreeSnapshot(SnapBaseModel):
    """Ordered mapping of relative path to Entry produced by one walk.

    Entries are sorted by path segments, so a directory always precedes its
    descendants and two walks over an unchanged tree compare equal.

    Attributes:
        entries: Entries keyed by relative path, in sorted order.
        omissions: Paths that were listed but could not be described during
            the walk (vanished or unreadable).
    """
    entries: Dict[RelativePath, Entry] = Field(default_factory=dict)
    omissions: FrozenSet[RelativePath] = Field(default_factory=frozenset)

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[Entry],
        omissions: Iterable[RelativePath] = (),
    ) -> "TreeSnapshot":
        ordered = {entry.path: entry for entry in sorted(entries, key=lambda e: e.path)}
        return cls(entries=ordered, omissions=frozenset(omissions))

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def get(self, path: RelativePath) -> Optional[Entry]:
        return self.entries.get(path)

    def iter_entries(self) -> Iterator[Entry]:
        return iter(self.entries.values())

    @property
    def files(self) -> List[Entry]:
        return [entry for entry in self.entries.values() if entry.is_file]

    @property
    def directories(self) -> List[Entry]:
        return [entry for entry in self.entries.values() if entry.is_dir]

    @property
    def total_size(self) -> int:
        """Sum of the sizes of all file entries."""
        return sum(entry.size for entry in self.files)
