"""Archive writer: streams a stable capture into a tar.zst file."""

import io
import os
import tarfile
import tempfile
from pathlib import Path
from typing import Union

import zstandard

from stablesnap.common.exceptions import ErrorCode, configuration_error, write_error
from stablesnap.constants import DEFAULT_COMPRESSION_LEVEL, MIN_COMPRESSION_LEVEL, PARTIAL_SUFFIX
from stablesnap.logging import get_logger
from stablesnap.types import ArchiveStats, CaptureAttempt, Entry
from stablesnap.utils import traced

logger = get_logger(__name__)

_NS_PER_SECOND = 1_000_000_000


class ArchiveWriter:
    """Writes GNU tar archives compressed with zstd.

    Members are emitted in snapshot order with normalised ownership, so the
    output is byte-for-byte reproducible for identical input and level. The
    archive is streamed into a hidden partial file beside the destination
    and renamed over it only once complete; on failure the partial file is
    removed, so a truncated archive never sits at the destination path.
    """

    def __init__(self, compression_level: int = DEFAULT_COMPRESSION_LEVEL):
        if not MIN_COMPRESSION_LEVEL <= compression_level <= zstandard.MAX_COMPRESSION_LEVEL:
            raise configuration_error(
                f"Compression level must be between {MIN_COMPRESSION_LEVEL} "
                f"and {zstandard.MAX_COMPRESSION_LEVEL}",
                config_key="compression_level",
                value=compression_level,
                error_code=ErrorCode.CONFIG_INVALID,
            )
        self.compression_level = compression_level

    @staticmethod
    def partial_prefix(destination: Union[str, Path]) -> str:
        """Name prefix of the temp files used while writing ``destination``."""
        return f".{Path(destination).name}."

    @traced(attribute_getter=lambda self, attempt, output_path: {"stablesnap.output": str(output_path)})
    def write(self, attempt: CaptureAttempt, output_path: Union[str, Path]) -> ArchiveStats:
        """Write the contents of a stable attempt to ``output_path``.

        Raises:
            WriteError: if the destination cannot be created or the write
                fails partway
        """
        destination = Path(os.path.abspath(output_path))
        try:
            fd, partial = tempfile.mkstemp(
                prefix=self.partial_prefix(destination),
                suffix=PARTIAL_SUFFIX,
                dir=destination.parent,
            )
        except OSError as exc:
            raise write_error(
                f"Cannot create archive in {destination.parent}",
                destination,
                cause=exc,
                error_code=ErrorCode.DESTINATION_UNAVAILABLE,
            ) from exc

        try:
            with os.fdopen(fd, "wb") as raw:
                stats = self._stream(attempt, raw)
                raw.flush()
                os.fsync(raw.fileno())
                stats.archive_bytes = raw.tell()
            os.replace(partial, destination)
        except (OSError, tarfile.TarError, zstandard.ZstdError) as exc:
            self._discard(partial)
            raise write_error(f"Failed writing archive {destination}", destination, cause=exc) from exc
        except BaseException:
            self._discard(partial)
            raise

        logger.info(
            "Wrote %s: %d files, %d directories, %d symlinks, %d bytes",
            destination,
            stats.files,
            stats.directories,
            stats.symlinks,
            stats.archive_bytes,
        )
        return stats

    def _stream(self, attempt: CaptureAttempt, raw: io.BufferedWriter) -> ArchiveStats:
        files = directories = symlinks = content_bytes = 0
        compressor = zstandard.ZstdCompressor(level=self.compression_level)

        with compressor.stream_writer(raw, closefd=False) as zwriter:
            with tarfile.open(fileobj=zwriter, mode="w|", format=tarfile.GNU_FORMAT) as tar:
                for entry in attempt.before.iter_entries():
                    info = self._tarinfo(entry)
                    if entry.is_file:
                        data = attempt.contents[entry.path]
                        info.size = len(data)
                        tar.addfile(info, io.BytesIO(data))
                        files += 1
                        content_bytes += len(data)
                    elif entry.is_dir:
                        tar.addfile(info)
                        directories += 1
                    else:
                        tar.addfile(info)
                        symlinks += 1
                    logger.debug("Added %s to archive; size %d", entry.arcname, info.size)

        return ArchiveStats(
            files=files,
            directories=directories,
            symlinks=symlinks,
            content_bytes=content_bytes,
        )

    @staticmethod
    def _tarinfo(entry: Entry) -> tarfile.TarInfo:
        info = tarfile.TarInfo(entry.arcname)
        info.mtime = entry.mtime_ns // _NS_PER_SECOND
        info.mode = entry.mode
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        if entry.is_dir:
            info.type = tarfile.DIRTYPE
        elif entry.is_symlink:
            info.type = tarfile.SYMTYPE
            info.linkname = entry.link_target or ""
        else:
            info.type = tarfile.REGTYPE
        return info

    @staticmethod
    def _discard(partial: str) -> None:
        try:
            os.unlink(partial)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove partial archive %s: %s", partial, exc)
