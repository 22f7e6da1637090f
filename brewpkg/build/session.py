# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Build session state for brewpkg.

A BuildSession is the mutable record of one engine invocation: state,
bounded log, progress, failure detail and the temporary files the build
created. It is owned by BuildOrchestrator, which serializes every mutation
under its lock; nothing in this module locks on its own.

State machine:

    IDLE -> RUNNING -> COMPLETED | FAILED | CANCELLED

Failure detail is a tagged value (BuildFailure). Callers that only care
about the category compare ``failure.kind``; the message, exit code and
stderr tail stay available for logs and tests.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import subprocess
import threading

from brewpkg.build.progress import COMPLETED_PROGRESS, advance_progress
from brewpkg.exceptions import (
    BuildCancelledError,
    EngineLaunchError,
    EngineNotFoundError,
    PackagingError,
    ProcessExitError,
    TemporaryResourceError,
)

LOG_LIMIT = 100_000
STDERR_TAIL_LINES = 20


class BuildState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildState.COMPLETED, BuildState.FAILED, BuildState.CANCELLED)


class FailureKind(str, Enum):
    ENGINE_NOT_FOUND = "engine_not_found"
    ENGINE_LAUNCH = "engine_launch"
    PROCESS_EXIT = "process_exit"
    CANCELLED = "cancelled"
    TEMPORARY_RESOURCE = "temporary_resource"
    INTERNAL = "internal"


_EXCEPTION_KINDS: tuple[tuple[type[PackagingError], FailureKind], ...] = (
    (EngineNotFoundError, FailureKind.ENGINE_NOT_FOUND),
    (EngineLaunchError, FailureKind.ENGINE_LAUNCH),
    (ProcessExitError, FailureKind.PROCESS_EXIT),
    (BuildCancelledError, FailureKind.CANCELLED),
    (TemporaryResourceError, FailureKind.TEMPORARY_RESOURCE),
)


@dataclass(frozen=True)
class BuildFailure:
    """Why a build did not complete.

    Attributes:
        kind: Failure category.
        message: Human-readable description.
        exit_code: Engine exit code, for PROCESS_EXIT failures.
        stderr_tail: Last lines of engine stderr, for PROCESS_EXIT failures.
    """

    kind: FailureKind
    message: str
    exit_code: int | None = None
    stderr_tail: str = ""

    def same_kind(self, other: BuildFailure | None) -> bool:
        return other is not None and other.kind is self.kind

    @classmethod
    def from_exception(cls, err: Exception) -> BuildFailure:
        if isinstance(err, ProcessExitError):
            return cls(
                FailureKind.PROCESS_EXIT,
                str(err),
                exit_code=err.exit_code,
                stderr_tail=err.stderr_tail,
            )
        for exc_type, kind in _EXCEPTION_KINDS:
            if isinstance(err, exc_type):
                return cls(kind, str(err))
        return cls(FailureKind.INTERNAL, f"{type(err).__name__}: {err}")

    def to_exception(self) -> PackagingError:
        if self.kind is FailureKind.PROCESS_EXIT:
            return ProcessExitError(self.exit_code or 1, self.stderr_tail)
        for exc_type, kind in _EXCEPTION_KINDS:
            if kind is self.kind:
                return exc_type(self.message)
        return PackagingError(self.message)


class BuildLog:
    """Append-only text buffer bounded at ``limit`` characters.

    Once the limit is crossed the oldest half is dropped, or more when a
    single chunk overshoots by over half the limit, so the text always ends
    up at or under the limit. The cut lands just after a newline. When the
    newest line alone is longer than what can be kept, it is kept truncated
    from its start rather than dropped.
    """

    def __init__(self, limit: int = LOG_LIMIT) -> None:
        self.limit = limit
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    def append(self, chunk: str) -> None:
        self._text += chunk
        if len(self._text) > self.limit:
            self._trim()

    def clear(self) -> None:
        self._text = ""

    def _trim(self) -> None:
        size = len(self._text)
        cut = max(size // 2, size - self.limit)
        newline = self._text.find("\n", cut - 1)
        # A newline that ends the text would leave nothing behind.
        if newline != -1 and newline + 1 < size:
            cut = newline + 1
        self._text = self._text[cut:]


class TemporaryResources:
    """Temporary files owned by one build, removed exactly once."""

    def __init__(self) -> None:
        self._paths: list[Path] = []

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def add(self, path: Path) -> Path:
        self._paths.append(path)
        return path

    def cleanup(self) -> None:
        """Remove every owned path. Missing files and OS errors are ignored."""
        paths, self._paths = self._paths, []
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError:
                # The path has left our ownership either way.
                pass


class BuildSession:
    """Mutable state of one build. Callers hold the orchestrator lock."""

    def __init__(self, log_limit: int = LOG_LIMIT) -> None:
        self.state = BuildState.IDLE
        self.log = BuildLog(log_limit)
        self.progress = 0.0
        self.failure: BuildFailure | None = None
        self.resources = TemporaryResources()
        self.process: subprocess.Popen[str] | None = None
        self.arguments: list[str] = []
        self.input_path: Path | None = None
        self.output_path: Path | None = None
        self.stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self.consumer: threading.Thread | None = None
        self.finished = threading.Event()

    def raise_progress(self, value: float) -> None:
        if value > self.progress:
            self.progress = min(value, COMPLETED_PROGRESS)

    def record_output(self, chunk: str, stream: str) -> None:
        self.log.append(chunk)
        if stream == "stderr":
            self.stderr_tail.append(chunk.rstrip("\n"))
        self.raise_progress(advance_progress(self.progress, chunk))

    def finish(self, failure: BuildFailure | None) -> None:
        """Move to a terminal state and release temporary files."""
        if failure is None:
            self.state = BuildState.COMPLETED
            self.progress = COMPLETED_PROGRESS
        elif failure.kind is FailureKind.CANCELLED:
            self.state = BuildState.CANCELLED
        else:
            self.state = BuildState.FAILED
        self.failure = failure
        self.resources.cleanup()
