"""Stability verifier: one bracketed capture attempt.

An attempt walks the tree, reads every file, and walks it again. The capture
is accepted only if nothing changed between the two walks and every read was
itself bracketed by unchanged metadata.

This is a sampling check, not a transactional guarantee: a write that
starts and finishes within the filesystem's timestamp resolution and leaves
the size unchanged is invisible to it.
"""

import os
import stat
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple, Union

from stablesnap.common.exceptions import AccessError
from stablesnap.logging import get_logger
from stablesnap.types import CaptureAttempt, Entry, StabilityVerdict
from stablesnap.utils import traced

from .prober import MetadataProber
from .walker import TreeWalker

logger = get_logger(__name__)


class StabilityVerifier:
    """Runs single capture attempts. Retrying is the orchestrator's job.

    Attributes:
        walker: Tree walker taking the before and after snapshots
        prober: Prober bracketing each individual file read
        max_workers: Threads used to read file contents
    """

    def __init__(
        self,
        walker: Optional[TreeWalker] = None,
        prober: Optional[MetadataProber] = None,
        max_workers: int = 4,
    ):
        self.walker = walker or TreeWalker()
        self.prober = prober or self.walker.prober
        self.max_workers = max(1, max_workers)

    @traced(attribute_getter=lambda self, root, number=1: {"stablesnap.attempt": number})
    def attempt(
        self,
        root: Union[str, Path],
        number: int = 1,
    ) -> Tuple[StabilityVerdict, Optional[CaptureAttempt]]:
        """Execute one before/read/after pass over ``root``.

        Args:
            root: Capture root
            number: Attempt number, for diagnostics

        Returns:
            The verdict, and the attempt with its buffers when stable. An
            unstable attempt is released and ``None`` is returned in its place.

        Raises:
            WalkError: if the root cannot be listed
        """
        root_path = os.path.abspath(root)

        before = self.walker.walk(root_path)
        attempt = CaptureAttempt(number=number, before=before)
        self._read_contents(root_path, attempt)
        attempt.after = self.walker.walk(root_path)

        verdict = StabilityVerdict.compare(attempt.before, attempt.after, attempt.unread)
        if not verdict.stable:
            logger.info(
                "Attempt %d unstable: %d offending paths",
                number,
                len(verdict.offending_paths),
                extra={"offending_paths": verdict.offending_paths[:50]},
            )
            attempt.release()
            return verdict, None

        logger.info(
            "Attempt %d stable: %d entries, %d bytes read",
            number,
            len(attempt.before),
            attempt.bytes_held,
        )
        return verdict, attempt

    def _read_contents(self, root: str, attempt: CaptureAttempt) -> None:
        files = attempt.before.files
        if not files:
            return

        workers = min(self.max_workers, len(files))
        if workers == 1:
            results: List[Optional[bytes]] = [self.read_file(root, entry) for entry in files]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="stablesnap-read") as pool:
                results = list(pool.map(lambda entry: self.read_file(root, entry), files))

        for entry, data in zip(files, results):
            if data is None:
                attempt.unread.add(entry.path)
            else:
                attempt.contents[entry.path] = data

    def read_file(self, root: str, entry: Entry) -> Optional[bytes]:
        """Read one file, bracketed by its own metadata probes.

        Returns:
            The file contents, or ``None`` if the file changed around the
            read, vanished, or could not be read.
        """
        full = os.path.join(root, *entry.path)
        try:
            current = self.prober.probe(full, entry.path)
            if current is None or current.signature != entry.signature:
                logger.debug("File %s changed before its read", entry.arcname)
                return None

            data = self._read_regular(full)
            if data is None:
                logger.debug("File %s is no longer a regular file", entry.arcname)
                return None

            current = self.prober.probe(full, entry.path)
        except AccessError:
            return None
        except OSError as exc:
            logger.debug("Failed to read %s: %s", entry.arcname, exc)
            return None

        if current is None or current.signature != entry.signature or len(data) != entry.size:
            logger.debug("File %s changed during its read", entry.arcname)
            return None
        return data

    @staticmethod
    def _read_regular(full: str) -> Optional[bytes]:
        # O_NONBLOCK keeps a FIFO swapped in after the probe from blocking the open.
        fd = os.open(full, os.O_RDONLY | getattr(os, "O_NONBLOCK", 0) | getattr(os, "O_BINARY", 0))
        try:
            regular = stat.S_ISREG(os.fstat(fd).st_mode)
        except BaseException:
            os.close(fd)
            raise
        if not regular:
            os.close(fd)
            return None
        with os.fdopen(fd, "rb") as fh:
            return fh.read()
