from enum import Enum, IntEnum


class EntryKind(str, Enum):
    """Kind of a filesystem entry inside a capture.

    Symbolic links are never followed; they are recorded as opaque leaves
    described by the link's own metadata.

    Values:
        FILE: Regular file, contents are read and archived
        DIRECTORY: Directory, archived as a directory member (even when empty)
        SYMLINK: Symbolic link leaf, archived with its target string
    """
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class CaptureState(str, Enum):
    """States of the capture orchestrator.

    ``DONE``, ``EXHAUSTED`` and ``CANCELLED`` are terminal.
    """
    IDLE = "idle"
    ATTEMPTING = "attempting"
    STABLE = "stable"
    UNSTABLE = "unstable"
    WRITING = "writing"
    DONE = "done"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class LogFormat(str, Enum):
    """Console log layouts supported by ``setup_logging``."""
    JSON = "json"
    TEXT = "text"


class ExitCode(IntEnum):
    """Process exit codes of the ``stablesnap`` command.

    Instability (``EXHAUSTED``) uses the sysexits temporary-failure code so
    scripts can tell "try again later" apart from environmental failures.
    """
    OK = 0
    UNEXPECTED = 1
    CONFIG_ERROR = 2
    TARGET_NOT_DIRECTORY = 3
    WALK_ERROR = 4
    WRITE_ERROR = 5
    ACCESS_ERROR = 6
    EXHAUSTED = 75
    CANCELLED = 130
