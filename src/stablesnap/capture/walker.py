"""Tree walker: enumerates everything below a capture root."""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

from stablesnap.common.exceptions import AccessError, walk_error
from stablesnap.logging import get_logger
from stablesnap.types import Entry, RelativePath, TreeSnapshot
from stablesnap.utils import traced

from .prober import MetadataProber

logger = get_logger(__name__)


class TreeWalker:
    """Produces deterministic TreeSnapshots of a directory tree.

    Descent is iterative over an explicit stack and never follows symlinks,
    which are recorded as leaves. Entries that vanish or cannot be read
    between listing and probing are recorded as omissions; only a root that
    cannot be listed aborts the walk.

    Attributes:
        prober: Metadata prober used for every listed entry
        excluded: Absolute paths never included in a snapshot
        excluded_prefixes: ``(directory, name prefix)`` pairs; entries in
            ``directory`` whose name starts with the prefix are skipped
    """

    def __init__(
        self,
        prober: Optional[MetadataProber] = None,
        excluded: Iterable[Union[str, Path]] = (),
        excluded_prefixes: Iterable[Tuple[Union[str, Path], str]] = (),
    ):
        self.prober = prober or MetadataProber()
        self.excluded: Set[str] = {os.path.abspath(p) for p in excluded}
        self.excluded_prefixes: Set[Tuple[str, str]] = {
            (os.path.abspath(directory), prefix) for directory, prefix in excluded_prefixes
        }

    def _is_excluded(self, directory: str, name: str) -> bool:
        if os.path.join(directory, name) in self.excluded:
            return True
        return any(
            directory == excluded_dir and name.startswith(prefix)
            for excluded_dir, prefix in self.excluded_prefixes
        )

    @traced(attribute_getter=lambda self, root: {"stablesnap.root": str(root)})
    def walk(self, root: Union[str, Path]) -> TreeSnapshot:
        """Walk ``root`` and return its snapshot.

        Raises:
            WalkError: if the root itself cannot be listed
        """
        root_path = os.path.abspath(root)
        entries: List[Entry] = []
        omissions: Set[RelativePath] = set()

        try:
            root_listing = self._list(root_path)
        except OSError as exc:
            raise walk_error(f"Cannot read capture root {root_path}", root_path, cause=exc) from exc

        stack: List[Tuple[str, RelativePath, List[str]]] = [(root_path, (), root_listing)]
        while stack:
            directory, rel_dir, names = stack.pop()
            for name in names:
                if self._is_excluded(directory, name):
                    continue
                full = os.path.join(directory, name)
                relative = rel_dir + (name,)
                try:
                    entry = self.prober.probe(full, relative)
                except AccessError:
                    omissions.add(relative)
                    continue
                if entry is None:
                    continue
                entries.append(entry)
                if entry.is_dir:
                    try:
                        stack.append((full, relative, self._list(full)))
                    except OSError as exc:
                        logger.debug("Cannot list %s: %s", full, exc)
                        omissions.add(relative)

        snapshot = TreeSnapshot.from_entries(entries, omissions)
        logger.debug(
            "Walked %s: %d entries, %d omissions", root_path, len(snapshot), len(omissions)
        )
        return snapshot

    @staticmethod
    def _list(directory: str) -> List[str]:
        with os.scandir(directory) as it:
            return sorted(entry.name for entry in it)
