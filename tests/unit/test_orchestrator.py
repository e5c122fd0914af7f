"""Tests for the capture orchestrator state machine."""

import threading
import time
from unittest.mock import patch

import pytest

from conftest import MutatingWalker, read_archive

from stablesnap.capture import CaptureOrchestrator, StabilityVerifier, capture
from stablesnap.common.exceptions import AccessError, ErrorCode, WalkError
from stablesnap.constants import CaptureState
from stablesnap.settings import load_settings


def _settings(root, output, **overrides):
    return load_settings(target_directory=root, output_path=output, **overrides)


class TestCaptureOrchestrator:
    """Test the iterate-until-stable-or-exhausted control flow."""

    def test_static_tree_is_captured_on_first_attempt(self, make_tree, output_dir):
        root = make_tree({"a.txt": "alpha", "sub/b.txt": "beta", "sub/empty": None})
        destination = output_dir / "snap.tar.zst"
        orchestrator = CaptureOrchestrator(_settings(root, destination))

        result = orchestrator.run()

        assert result.state == CaptureState.DONE
        assert result.succeeded
        assert result.attempts == 1
        assert result.output_path == destination.resolve()
        assert result.stats.files == 2
        assert orchestrator.history == [
            CaptureState.IDLE,
            CaptureState.ATTEMPTING,
            CaptureState.STABLE,
            CaptureState.WRITING,
            CaptureState.DONE,
        ]
        assert read_archive(destination) == {
            "a.txt": ("file", b"alpha"),
            "sub": ("directory", None),
            "sub/b.txt": ("file", b"beta"),
            "sub/empty": ("directory", None),
        }

    def test_empty_root_succeeds_with_zero_entries(self, make_tree, output_dir):
        root = make_tree({})
        destination = output_dir / "snap.tar.zst"

        result = capture(_settings(root, destination))

        assert result.state == CaptureState.DONE
        assert result.attempts == 1
        assert read_archive(destination) == {}

    def test_rewrite_in_first_attempt_is_retried(self, make_tree, output_dir):
        root = make_tree({"a.txt": "0123456789", "b.txt": "first"})
        destination = output_dir / "snap.tar.zst"

        def rewrite(call):
            (root / "b.txt").write_text("second, and longer")

        walker = MutatingWalker(rewrite, on_calls={2})
        settings = _settings(root, destination)
        orchestrator = CaptureOrchestrator(settings, verifier=StabilityVerifier(walker=walker))

        result = orchestrator.run()

        assert result.state == CaptureState.DONE
        assert result.attempts == 2
        assert walker.calls == 4
        assert orchestrator.history == [
            CaptureState.IDLE,
            CaptureState.ATTEMPTING,
            CaptureState.UNSTABLE,
            CaptureState.ATTEMPTING,
            CaptureState.STABLE,
            CaptureState.WRITING,
            CaptureState.DONE,
        ]
        assert read_archive(destination) == {
            "a.txt": ("file", b"0123456789"),
            "b.txt": ("file", b"second, and longer"),
        }

    def test_first_attempt_verdict_lists_rewritten_file(self, make_tree, output_dir):
        root = make_tree({"a.txt": "0123456789", "b.txt": "first"})

        def rewrite(call):
            (root / "b.txt").write_text("second, and longer")

        walker = MutatingWalker(rewrite, on_calls={2})
        verifier = StabilityVerifier(walker=walker)

        first, _ = verifier.attempt(root, number=1)
        second, attempt = verifier.attempt(root, number=2)

        assert first.offending_paths == ["b.txt"]
        assert second.stable
        assert attempt.contents[("b.txt",)] == b"second, and longer"

    @pytest.mark.parametrize("max_retries", [1, 2, 5])
    def test_constant_rewrites_exhaust_exactly_the_budget(self, make_tree, output_dir, max_retries):
        root = make_tree({"a.txt": "a", "busy.log": "x"})
        destination = output_dir / "snap.tar.zst"

        def append(call):
            with open(root / "busy.log", "a") as fh:
                fh.write("x")

        walker = MutatingWalker(append, every_after_walk=True)
        orchestrator = CaptureOrchestrator(
            _settings(root, destination, max_retries=max_retries),
            verifier=StabilityVerifier(walker=walker),
        )

        result = orchestrator.run()

        assert result.state == CaptureState.EXHAUSTED
        assert result.attempts == max_retries
        assert walker.calls == 2 * max_retries
        assert result.offending_paths == ["busy.log"]
        assert orchestrator.history.count(CaptureState.ATTEMPTING) == max_retries
        assert orchestrator.history[-1] == CaptureState.EXHAUSTED
        assert not destination.exists()
        assert list(output_dir.iterdir()) == []

    def test_repeated_captures_of_unchanged_tree_match(self, make_tree, output_dir):
        root = make_tree({"a.txt": "alpha", "sub/b.txt": "beta", "sub/empty": None})

        capture(_settings(root, output_dir / "one.tar.zst"))
        capture(_settings(root, output_dir / "two.tar.zst"))

        assert read_archive(output_dir / "one.tar.zst") == read_archive(output_dir / "two.tar.zst")

    def test_output_inside_root_is_not_captured(self, make_tree):
        root = make_tree({"a.txt": "alpha"})
        destination = root / "snap.tar.zst"

        capture(_settings(root, destination))
        capture(_settings(root, destination))

        assert read_archive(destination) == {"a.txt": ("file", b"alpha")}

    def test_cancel_before_start_makes_no_attempt(self, make_tree, output_dir):
        root = make_tree({"a.txt": "a"})
        destination = output_dir / "snap.tar.zst"
        cancel = threading.Event()
        cancel.set()

        orchestrator = CaptureOrchestrator(_settings(root, destination), cancel_event=cancel)
        result = orchestrator.run()

        assert result.state == CaptureState.CANCELLED
        assert result.attempts == 0
        assert orchestrator.history == [CaptureState.IDLE, CaptureState.CANCELLED]
        assert not destination.exists()

    def test_cancel_between_attempts_stops_retrying(self, make_tree, output_dir):
        root = make_tree({"busy.log": "x"})
        destination = output_dir / "snap.tar.zst"
        cancel = threading.Event()

        def append_and_cancel(call):
            with open(root / "busy.log", "a") as fh:
                fh.write("x")
            cancel.set()

        walker = MutatingWalker(append_and_cancel, every_after_walk=True)
        orchestrator = CaptureOrchestrator(
            _settings(root, destination),
            verifier=StabilityVerifier(walker=walker),
            cancel_event=cancel,
        )

        result = orchestrator.run()

        assert result.state == CaptureState.CANCELLED
        assert result.attempts == 1
        assert result.offending_paths == ["busy.log"]
        assert not destination.exists()

    def test_cancel_after_stable_attempt_skips_writing(self, make_tree, output_dir):
        root = make_tree({"a.txt": "a"})
        destination = output_dir / "snap.tar.zst"
        cancel = threading.Event()

        walker = MutatingWalker(lambda call: cancel.set(), on_calls={2})
        orchestrator = CaptureOrchestrator(
            _settings(root, destination),
            verifier=StabilityVerifier(walker=walker),
            cancel_event=cancel,
        )

        result = orchestrator.run()

        assert result.state == CaptureState.CANCELLED
        assert orchestrator.history[-2:] == [CaptureState.STABLE, CaptureState.CANCELLED]
        assert CaptureState.WRITING not in orchestrator.history
        assert not destination.exists()

    def test_vanished_root_raises_walk_error(self, make_tree, output_dir):
        root = make_tree({})
        orchestrator = CaptureOrchestrator(_settings(root, output_dir / "snap.tar.zst"))
        root.rmdir()

        with pytest.raises(WalkError):
            orchestrator.run()

    def test_orchestrator_runs_only_once(self, make_tree, output_dir):
        root = make_tree({"a.txt": "a"})
        orchestrator = CaptureOrchestrator(_settings(root, output_dir / "snap.tar.zst"))
        orchestrator.run()

        with pytest.raises(RuntimeError):
            orchestrator.run()

    def test_file_unreadable_on_every_attempt_raises_access_error(self, make_tree, output_dir):
        root = make_tree({"a.txt": "a", "secret.bin": "s"})
        destination = output_dir / "snap.tar.zst"
        real_read = StabilityVerifier._read_regular

        def read_regular(full):
            if full.endswith("secret.bin"):
                raise PermissionError(13, "Permission denied", full)
            return real_read(full)

        orchestrator = CaptureOrchestrator(_settings(root, destination, max_retries=3))
        with patch.object(StabilityVerifier, "_read_regular", side_effect=read_regular):
            with pytest.raises(AccessError) as exc_info:
                orchestrator.run()

        assert exc_info.value.error_code == ErrorCode.PERSISTENTLY_INACCESSIBLE
        assert exc_info.value.path == "secret.bin"
        assert orchestrator.attempts == 3
        assert CaptureState.EXHAUSTED not in orchestrator.history
        assert not destination.exists()

    def test_unreadable_file_next_to_changing_file_still_exhausts(self, make_tree, output_dir):
        root = make_tree({"busy.log": "x", "secret.bin": "s"})
        destination = output_dir / "snap.tar.zst"
        real_read = StabilityVerifier._read_regular

        def read_regular(full):
            if full.endswith("secret.bin"):
                raise PermissionError(13, "Permission denied", full)
            return real_read(full)

        def append(call):
            with open(root / "busy.log", "a") as fh:
                fh.write("x")

        orchestrator = CaptureOrchestrator(
            _settings(root, destination, max_retries=2),
            verifier=StabilityVerifier(walker=MutatingWalker(append, every_after_walk=True)),
        )
        with patch.object(StabilityVerifier, "_read_regular", side_effect=read_regular):
            result = orchestrator.run()

        assert result.state == CaptureState.EXHAUSTED
        assert result.offending_paths == ["busy.log", "secret.bin"]

    def test_cancel_interrupts_retry_delay(self, make_tree, output_dir):
        root = make_tree({"busy.log": "x"})
        destination = output_dir / "snap.tar.zst"
        cancel = threading.Event()

        def append(call):
            with open(root / "busy.log", "a") as fh:
                fh.write("x")

        orchestrator = CaptureOrchestrator(
            _settings(root, destination, retry_delay_seconds=60),
            verifier=StabilityVerifier(walker=MutatingWalker(append, every_after_walk=True)),
            cancel_event=cancel,
        )
        timer = threading.Timer(0.2, cancel.set)
        timer.start()
        try:
            started = time.monotonic()
            result = orchestrator.run()
            elapsed = time.monotonic() - started
        finally:
            timer.cancel()

        assert result.state == CaptureState.CANCELLED
        assert result.attempts == 1
        assert elapsed < 30
        assert not destination.exists()
