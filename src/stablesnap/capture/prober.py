"""Metadata prober: describes a single filesystem entry."""

import os
import stat
from pathlib import Path
from typing import Optional, Union

from stablesnap.common.exceptions import AccessError
from stablesnap.constants import EntryKind
from stablesnap.logging import get_logger
from stablesnap.types import Entry, RelativePath

logger = get_logger(__name__)


class MetadataProber:
    """Reads identifying attributes of one entry without following symlinks.

    Probing is a pure read. An entry that vanished or became unreadable
    since it was listed raises ``AccessError``; callers fold that into the
    stability verdict instead of failing the run.
    """

    def probe(self, path: Union[str, Path], relative: RelativePath) -> Optional[Entry]:
        """Describe ``path`` as an Entry.

        Args:
            path: Absolute (or cwd-relative) location of the entry
            relative: Path of the entry relative to the capture root

        Returns:
            The entry, or ``None`` for kinds that are never captured
            (FIFOs, sockets, device nodes).

        Raises:
            AccessError: if the entry cannot be stat'ed or its link read
        """
        try:
            st = os.lstat(path)
        except OSError as exc:
            raise AccessError.from_os_error(path, exc) from exc

        link_target = None
        if stat.S_ISREG(st.st_mode):
            kind = EntryKind.FILE
        elif stat.S_ISDIR(st.st_mode):
            kind = EntryKind.DIRECTORY
        elif stat.S_ISLNK(st.st_mode):
            kind = EntryKind.SYMLINK
            try:
                link_target = os.readlink(path)
            except OSError as exc:
                raise AccessError.from_os_error(path, exc) from exc
        else:
            logger.debug("Skipping unsupported entry %s (mode %o)", path, st.st_mode)
            return None

        return Entry(
            path=relative,
            kind=kind,
            size=st.st_size,
            mtime_ns=st.st_mtime_ns,
            mode=stat.S_IMODE(st.st_mode),
            link_target=link_target,
        )
