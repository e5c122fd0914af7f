"""Capture orchestrator: iterate until stable or exhausted.

The retry loop is an explicit state machine::

    IDLE -> ATTEMPTING -> STABLE -> WRITING -> DONE
                       -> UNSTABLE -> ATTEMPTING      (budget remains)
                                   -> EXHAUSTED       (budget spent)

with CANCELLED reachable between attempts and before writing. Nothing but
the retry budget is carried from one attempt to the next.

An attempt budget spent on entries that could never be probed or read, with
nothing else changing, is an environmental failure and raises ``AccessError``
instead of ending EXHAUSTED.
"""

import threading
from typing import List, Optional

from stablesnap.common.exceptions import AccessError, ErrorCode
from stablesnap.constants import CaptureState
from stablesnap.logging import get_logger, set_capture_context
from stablesnap.observability import CaptureContext, capture_scope
from stablesnap.settings import CaptureSettings
from stablesnap.types import CaptureAttempt, CaptureResult, StabilityVerdict

from .archive import ArchiveWriter
from .verifier import StabilityVerifier
from .walker import TreeWalker

logger = get_logger(__name__)


class CaptureOrchestrator:
    """Wires verifier and archive writer into the capture state machine.

    Attributes:
        settings: Validated capture settings
        verifier: Runs single attempts
        writer: Writes the archive of the stable attempt
        cancel_event: Set from outside to stop the run between attempts
        state: Current state
        history: Every state entered, in order, starting with IDLE
        attempts: Number of attempts made so far
    """

    def __init__(
        self,
        settings: CaptureSettings,
        verifier: Optional[StabilityVerifier] = None,
        writer: Optional[ArchiveWriter] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.settings = settings
        self.root = settings.resolved_target
        self.output_path = settings.resolved_output
        self.writer = writer or ArchiveWriter(settings.compression_level)
        self.verifier = verifier or StabilityVerifier(
            walker=TreeWalker(
                excluded=[self.output_path],
                excluded_prefixes=[(self.output_path.parent, ArchiveWriter.partial_prefix(self.output_path))],
            ),
            max_workers=settings.max_workers,
        )
        self.cancel_event = cancel_event or threading.Event()
        self.state = CaptureState.IDLE
        self.history: List[CaptureState] = [CaptureState.IDLE]
        self.attempts = 0

    def _transition(self, state: CaptureState) -> None:
        logger.debug("Capture state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def run(self) -> CaptureResult:
        """Capture the tree and write the archive.

        Returns:
            CaptureResult in DONE, EXHAUSTED or CANCELLED state

        Raises:
            WalkError: if the root cannot be listed
            AccessError: if the budget ran out only because entries stayed
                unreadable
            WriteError: if the archive cannot be written
        """
        if self.state != CaptureState.IDLE:
            raise RuntimeError(f"Capture already ran (state: {self.state.value})")

        ctx = CaptureContext.generate(target=str(self.root), output=str(self.output_path))
        with capture_scope(ctx):
            logger.info(
                "Capturing %s into %s (max %d attempts)",
                self.root,
                self.output_path,
                self.settings.max_retries,
            )
            return self._run()

    def _run(self) -> CaptureResult:
        remaining = self.settings.max_retries
        verdict: Optional[StabilityVerdict] = None
        attempt: Optional[CaptureAttempt] = None

        while attempt is None:
            if self.cancel_event.is_set():
                return self._cancelled(verdict)

            self._transition(CaptureState.ATTEMPTING)
            self.attempts += 1
            set_capture_context(attempt=self.attempts)
            verdict, attempt = self.verifier.attempt(self.root, number=self.attempts)

            if verdict.stable:
                self._transition(CaptureState.STABLE)
                continue

            self._transition(CaptureState.UNSTABLE)
            remaining -= 1
            if remaining <= 0:
                if verdict.inaccessible_only:
                    raise self._inaccessible(verdict)

                self._transition(CaptureState.EXHAUSTED)
                logger.error(
                    "Tree did not settle after %d attempts; %d paths kept changing",
                    self.attempts,
                    len(verdict.offending_paths),
                    extra={"offending_paths": verdict.offending_paths[:50]},
                )
                return CaptureResult(
                    state=CaptureState.EXHAUSTED,
                    attempts=self.attempts,
                    verdict=verdict,
                )

            logger.info("Retrying capture, %d attempts left", remaining)
            if self.settings.retry_delay_seconds:
                self.cancel_event.wait(self.settings.retry_delay_seconds)

        try:
            if self.cancel_event.is_set():
                return self._cancelled(verdict)

            self._transition(CaptureState.WRITING)
            stats = self.writer.write(attempt, self.output_path)
        finally:
            attempt.release()

        self._transition(CaptureState.DONE)
        return CaptureResult(
            state=CaptureState.DONE,
            attempts=self.attempts,
            output_path=self.output_path,
            stats=stats,
            verdict=verdict,
        )

    def _inaccessible(self, verdict: StabilityVerdict) -> AccessError:
        # Nothing moved in the last attempt; entries just cannot be reached.
        paths = verdict.offending_paths
        return AccessError(
            f"{len(paths)} paths were still unreadable after {self.attempts} attempts: "
            f"{', '.join(paths[:20])}",
            error_code=ErrorCode.PERSISTENTLY_INACCESSIBLE,
            details={"path": paths[0], "paths": paths[:50], "attempts": self.attempts},
        )

    def _cancelled(self, verdict: Optional[StabilityVerdict]) -> CaptureResult:
        self._transition(CaptureState.CANCELLED)
        logger.warning("Capture cancelled after %d attempts", self.attempts)
        return CaptureResult(
            state=CaptureState.CANCELLED,
            attempts=self.attempts,
            verdict=verdict,
        )


def capture(
    settings: CaptureSettings,
    cancel_event: Optional[threading.Event] = None,
) -> CaptureResult:
    """Run one capture with default components."""
    return CaptureOrchestrator(settings, cancel_event=cancel_event).run()
