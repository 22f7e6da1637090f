"""
Tests for brewpkg.build.session.

Tests cover:
- Bounded log trimming
- Temporary resource cleanup exactly once
- Session terminal transitions
- BuildFailure / exception mapping
"""

from __future__ import annotations

import pytest

from brewpkg.build.session import (
    STDERR_TAIL_LINES,
    BuildFailure,
    BuildLog,
    BuildSession,
    BuildState,
    FailureKind,
    TemporaryResources,
)
from brewpkg.exceptions import (
    BuildCancelledError,
    EngineNotFoundError,
    PackagingError,
    ProcessExitError,
)

pytestmark = pytest.mark.unit


class TestBuildLog:
    """Tests for BuildLog."""

    def test_appends_under_limit(self):
        """Test that text below the limit is kept verbatim."""
        log = BuildLog(limit=100)
        log.append("one\n")
        log.append("two\n")

        assert log.text == "one\ntwo\n"
        assert len(log) == 8

    def test_trims_oldest_half_on_line_boundary(self):
        """Test that overflow drops the oldest half at a newline."""
        log = BuildLog(limit=40)
        for i in range(10):
            log.append(f"line {i}\n")

        assert len(log) <= 40
        assert log.text.endswith("line 9\n")
        assert log.text.startswith("line ")
        assert "line 0\n" not in log.text

    def test_long_line_keeps_newest_content(self):
        """Test that a line longer than the limit keeps its newest part."""
        log = BuildLog(limit=100)
        log.append("a\n")
        log.append("y" * 300 + "\n")

        assert len(log) == 100
        assert log.text == "y" * 99 + "\n"

    def test_chunk_without_newline_stays_bounded(self):
        """Test that one oversized chunk without newlines is cut to the limit."""
        log = BuildLog(limit=100)
        log.append("x" * 1000)

        assert len(log) == 100

    def test_cut_lands_after_newline(self):
        """Test that older lines are dropped whole when newer lines fit."""
        log = BuildLog(limit=100)
        log.append("old " * 20 + "\n")
        log.append("middle line\n")
        log.append("z" * 60 + "\n")

        assert log.text == "middle line\n" + "z" * 60 + "\n"

    def test_clear(self):
        """Test that clear empties the log."""
        log = BuildLog()
        log.append("data")
        log.clear()

        assert log.text == ""


class TestTemporaryResources:
    """Tests for TemporaryResources."""

    def test_cleanup_removes_files_once(self, tmp_test_dir):
        """Test that cleanup removes every file and forgets them."""
        resources = TemporaryResources()
        files = [tmp_test_dir / f"f{i}" for i in range(3)]
        for path in files:
            path.write_text("x", encoding="utf-8")
            resources.add(path)

        resources.cleanup()

        assert not any(path.exists() for path in files)
        assert resources.paths == ()

    def test_cleanup_tolerates_missing_files(self, tmp_test_dir):
        """Test that already-removed files are ignored."""
        resources = TemporaryResources()
        resources.add(tmp_test_dir / "never-created")

        resources.cleanup()
        resources.cleanup()

        assert resources.paths == ()

    def test_second_cleanup_does_not_touch_reused_path(self, tmp_test_dir):
        """Test that a path recreated after cleanup is not removed again."""
        resources = TemporaryResources()
        path = resources.add(tmp_test_dir / "script.sh")
        path.write_text("x", encoding="utf-8")

        resources.cleanup()
        path.write_text("recreated", encoding="utf-8")
        resources.cleanup()

        assert path.read_text(encoding="utf-8") == "recreated"


class TestBuildSession:
    """Tests for BuildSession transitions."""

    def test_starts_idle(self):
        """Test the initial session state."""
        session = BuildSession()

        assert session.state is BuildState.IDLE
        assert session.progress == 0.0
        assert session.failure is None
        assert not session.state.is_terminal

    def test_success_sets_full_progress(self, tmp_test_dir):
        """Test that finishing without failure completes at 1.0."""
        session = BuildSession()
        session.state = BuildState.RUNNING
        temp = session.resources.add(tmp_test_dir / "engine")
        temp.write_text("x", encoding="utf-8")

        session.finish(None)

        assert session.state is BuildState.COMPLETED
        assert session.progress == 1.0
        assert not temp.exists()

    def test_cancel_failure_sets_cancelled(self):
        """Test that a cancelled failure maps to CANCELLED."""
        session = BuildSession()
        session.raise_progress(0.4)

        session.finish(BuildFailure(FailureKind.CANCELLED, "Build was cancelled"))

        assert session.state is BuildState.CANCELLED
        assert session.progress == 0.4

    def test_other_failure_sets_failed(self):
        """Test that any other failure maps to FAILED."""
        session = BuildSession()

        session.finish(BuildFailure(FailureKind.PROCESS_EXIT, "boom", exit_code=3))

        assert session.state is BuildState.FAILED
        assert session.failure.exit_code == 3

    def test_record_output_tracks_stderr_tail(self):
        """Test that only stderr lines enter the bounded tail."""
        session = BuildSession()
        session.record_output("Copying files\n", "stdout")
        for i in range(STDERR_TAIL_LINES + 5):
            session.record_output(f"err {i}\n", "stderr")

        assert len(session.stderr_tail) == STDERR_TAIL_LINES
        assert session.stderr_tail[-1] == f"err {STDERR_TAIL_LINES + 4}"
        assert "Copying files" in session.log.text
        assert session.progress == 0.4

    def test_raise_progress_is_capped(self):
        """Test that progress never exceeds 1.0 nor decreases."""
        session = BuildSession()
        session.raise_progress(0.5)
        session.raise_progress(0.3)
        assert session.progress == 0.5

        session.raise_progress(7.0)
        assert session.progress == 1.0


class TestBuildFailure:
    """Tests for BuildFailure conversions."""

    def test_from_process_exit_error(self):
        """Test that exit code and stderr tail are carried over."""
        failure = BuildFailure.from_exception(ProcessExitError(2, "bad input"))

        assert failure.kind is FailureKind.PROCESS_EXIT
        assert failure.exit_code == 2
        assert failure.stderr_tail == "bad input"

    def test_from_engine_not_found(self):
        """Test that EngineNotFoundError maps to ENGINE_NOT_FOUND."""
        failure = BuildFailure.from_exception(EngineNotFoundError("missing"))

        assert failure.kind is FailureKind.ENGINE_NOT_FOUND
        assert failure.message == "missing"

    def test_unexpected_exception_is_internal(self):
        """Test that arbitrary exceptions map to INTERNAL."""
        failure = BuildFailure.from_exception(RuntimeError("oops"))

        assert failure.kind is FailureKind.INTERNAL
        assert "RuntimeError" in failure.message

    def test_to_exception(self):
        """Test that failures convert back to the matching exception type."""
        cancelled = BuildFailure(FailureKind.CANCELLED, "Build was cancelled")
        exited = BuildFailure(FailureKind.PROCESS_EXIT, "x", exit_code=5)
        internal = BuildFailure(FailureKind.INTERNAL, "x")

        assert isinstance(cancelled.to_exception(), BuildCancelledError)
        assert exited.to_exception().exit_code == 5
        assert type(internal.to_exception()) is PackagingError

    def test_same_kind(self):
        """Test comparison by kind only."""
        a = BuildFailure(FailureKind.PROCESS_EXIT, "a", exit_code=1)
        b = BuildFailure(FailureKind.PROCESS_EXIT, "b", exit_code=2)

        assert a.same_kind(b)
        assert not a.same_kind(None)
        assert a != b
