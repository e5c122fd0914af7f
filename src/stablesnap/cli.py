"""Command line entry point.

stablesnap takes a snapshot of a directory tree that other processes may be
writing to, and guarantees every file lands in the archive in a stable state.
"""

import argparse
import signal
import sys
import threading
from typing import List, Optional

from stablesnap.__version__ import __version__
from stablesnap.capture import CaptureOrchestrator
from stablesnap.common.exceptions import (
    AccessError,
    ConfigError,
    ErrorCode,
    SnapshotError,
    WalkError,
    WriteError,
)
from stablesnap.constants import CaptureState, ExitCode, LogFormat
from stablesnap.logging import get_logger, setup_logging
from stablesnap.settings import load_settings

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stablesnap",
        description=(
            "Take a point-in-time snapshot of a changing directory tree. "
            "Every file is archived in a stable state or the run fails."
        ),
    )
    parser.add_argument("-t", "--target", dest="target_directory", help="Directory to capture")
    parser.add_argument(
        "-o", "--output", dest="output_path",
        help="Output archive (tar.zst). Default: output.tar.zst",
    )
    parser.add_argument(
        "-r", "--max-retries", dest="max_retries", type=int,
        help="Attempts before giving up on an unsettled tree. Default: 5",
    )
    parser.add_argument(
        "-c", "--compression-level", dest="compression_level", type=int,
        help="zstd compression level. Default: 3",
    )
    parser.add_argument(
        "-w", "--workers", dest="max_workers", type=int,
        help="Threads reading file contents. Default: 4",
    )
    parser.add_argument(
        "--retry-delay", dest="retry_delay_seconds", type=float,
        help="Seconds to wait between attempts. Default: 0",
    )
    parser.add_argument("-l", "--log-level", dest="log_level", help="Log level. Default: INFO")
    parser.add_argument(
        "--log-format", dest="log_format", choices=[f.value for f in LogFormat],
        help="Log layout. Default: json",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _install_signal_handlers(cancel_event: threading.Event) -> None:
    def _handler(signum, frame):
        logger.warning("Received signal %d, stopping after the current attempt", signum)
        cancel_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, _handler)


def exit_code_for(error: SnapshotError) -> ExitCode:
    """Map an error to the process exit code scripts rely on."""
    if isinstance(error, ConfigError):
        if error.error_code == ErrorCode.TARGET_NOT_DIRECTORY:
            return ExitCode.TARGET_NOT_DIRECTORY
        return ExitCode.CONFIG_ERROR
    if isinstance(error, WalkError):
        return ExitCode.WALK_ERROR
    if isinstance(error, WriteError):
        return ExitCode.WRITE_ERROR
    if isinstance(error, AccessError):
        return ExitCode.ACCESS_ERROR
    return ExitCode.UNEXPECTED


def run(argv: Optional[List[str]] = None, cancel_event: Optional[threading.Event] = None) -> int:
    """Parse ``argv``, run one capture and return the exit code."""
    args = build_parser().parse_args(argv)
    overrides = vars(args)

    # Configuration errors log themselves, so a handler must exist before loading.
    setup_logging(fmt=args.log_format or LogFormat.JSON)
    try:
        settings = load_settings(**overrides)
    except ConfigError as exc:
        return exit_code_for(exc)

    setup_logging(settings.log_level, settings.log_format)
    orchestrator = CaptureOrchestrator(settings, cancel_event=cancel_event)

    try:
        result = orchestrator.run()
    except SnapshotError as exc:
        logger.error("Capture failed: %s", exc, extra={"error": exc.to_dict()})
        return exit_code_for(exc)

    if result.state == CaptureState.DONE:
        logger.info("Snapshot written to %s after %d attempts", result.output_path, result.attempts)
        return ExitCode.OK
    if result.state == CaptureState.EXHAUSTED:
        logger.error(
            "Gave up after %d attempts: the tree would not settle. Offending paths: %s",
            result.attempts,
            ", ".join(result.offending_paths[:20]),
        )
        return ExitCode.EXHAUSTED
    return ExitCode.CANCELLED


def main(argv: Optional[List[str]] = None) -> None:
    cancel_event = threading.Event()
    _install_signal_handlers(cancel_event)
    sys.exit(int(run(argv, cancel_event=cancel_event)))
