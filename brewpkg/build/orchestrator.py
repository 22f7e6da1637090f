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

"""Build orchestration for brewpkg.

BuildOrchestrator drives one packaging engine invocation at a time. It
validates the configuration, stages the engine and script files, spawns
the engine and tracks it through to a terminal state.

Concurrency:
    One reader thread per engine stream (stdout, stderr) pushes lines onto a
    queue. A single consumer thread drains the queue and is the only writer
    of log, progress and terminal state besides cancel(). Every mutation
    happens under one re-entrant lock, which also serializes start(),
    cancel() and reset().

Termination:
    - exit 0 -> COMPLETED
    - killed by SIGINT/SIGTERM (negative return code, or 130/143 from a
      shell) -> CANCELLED
    - any other exit -> FAILED (process_exit) with the stderr tail
    - engine missing or unspawnable -> FAILED before any output

Cancellation sends SIGTERM to the engine's process group, then SIGKILL if
the engine is still alive after ``kill_grace`` seconds.

Temporary files are removed on every terminal transition, exactly once.

Example:
    ```python
    from pathlib import Path

    from brewpkg.build import BuildOrchestrator
    from brewpkg.config import BuildConfiguration

    orchestrator = BuildOrchestrator()
    config = BuildConfiguration(identifier="com.acme.app", version="2.0")
    orchestrator.start(config, Path("Acme.dmg"), Path("Acme.pkg"))
    result = orchestrator.wait()
    result.raise_for_status()
    ```
"""

from __future__ import annotations

import os
from pathlib import Path
import queue
import signal
import subprocess
import threading
from typing import IO, TYPE_CHECKING

from brewpkg.build.engine import locate_engine, stage_engine, write_script
from brewpkg.build.progress import SPAWNED_PROGRESS
from brewpkg.build.session import (
    LOG_LIMIT,
    BuildFailure,
    BuildSession,
    BuildState,
    FailureKind,
)
from brewpkg.config.model import BuildConfiguration
from brewpkg.exceptions import BuildInProgressError, EngineLaunchError
from brewpkg.logging import Logger

if TYPE_CHECKING:
    from brewpkg.results import BuildResult

CANCEL_RETURN_CODES = frozenset(
    {-signal.SIGINT, -signal.SIGTERM, 128 + signal.SIGINT, 128 + signal.SIGTERM}
)
# Seconds between SIGTERM and SIGKILL when a cancelled engine keeps running.
KILL_GRACE_SECONDS = 5.0

_Chunk = tuple[str, "str | None"]


def _read_stream(name: str, stream: IO[str], chunks: queue.Queue[_Chunk]) -> None:
    """Push each line of ``stream`` onto ``chunks``, then an end marker."""
    try:
        for line in iter(stream.readline, ""):
            chunks.put((name, line))
    except (OSError, ValueError):
        # Stream closed underneath us; the end marker still goes out.
        pass
    finally:
        chunks.put((name, None))


def _signal_group(process: subprocess.Popen[str], sig: signal.Signals) -> None:
    """Send ``sig`` to the engine's process group while the engine is alive."""
    if process.poll() is not None:
        return
    try:
        # start_new_session makes the engine its own group leader.
        os.killpg(process.pid, sig)
    except (ProcessLookupError, PermissionError):
        pass
    except OSError:
        process.send_signal(sig)


def _outcome(returncode: int, session: BuildSession) -> BuildFailure | None:
    if returncode == 0:
        return None
    if returncode in CANCEL_RETURN_CODES:
        return BuildFailure(FailureKind.CANCELLED, "Build was cancelled")
    stderr_tail = "\n".join(session.stderr_tail)
    return BuildFailure(
        FailureKind.PROCESS_EXIT,
        f"Build process failed with exit code: {returncode}",
        exit_code=returncode,
        stderr_tail=stderr_tail,
    )


class BuildOrchestrator:
    """Runs packaging engine builds and tracks their state.

    Args:
        engine_path: Explicit engine location. Default: BREWPKG_ENGINE, then
            ``brewpkg-engine`` / ``brewpkg-engine.sh`` on PATH.
        temp_dir: Where the engine copy and script files are staged.
            Default: the system temp dir.
        log_limit: Log ceiling in characters.
        kill_grace: Seconds a cancelled engine gets to exit after SIGTERM
            before its process group is sent SIGKILL.
        logger: Logger for BUILD and ENGINE messages. Default: the global
            logger at call time.
    """

    def __init__(
        self,
        engine_path: Path | None = None,
        *,
        temp_dir: Path | None = None,
        log_limit: int = LOG_LIMIT,
        kill_grace: float = KILL_GRACE_SECONDS,
        logger: Logger | None = None,
    ) -> None:
        self.engine_path = Path(engine_path) if engine_path is not None else None
        self.temp_dir = Path(temp_dir) if temp_dir is not None else None
        self.log_limit = log_limit
        self.kill_grace = kill_grace
        self._logger = logger
        self._lock = threading.RLock()
        self._session = BuildSession(log_limit)

    @property
    def logger(self) -> Logger:
        if self._logger is not None:
            return self._logger
        from brewpkg.logging import get_global_logger

        return get_global_logger()

    @property
    def state(self) -> BuildState:
        with self._lock:
            return self._session.state

    @property
    def progress(self) -> float:
        with self._lock:
            return self._session.progress

    @property
    def log(self) -> str:
        with self._lock:
            return self._session.log.text

    @property
    def failure(self) -> BuildFailure | None:
        with self._lock:
            return self._session.failure

    @property
    def is_running(self) -> bool:
        return self.state is BuildState.RUNNING

    def start(
        self,
        configuration: BuildConfiguration,
        input_path: Path,
        output_path: Path,
    ) -> bool:
        """Start a build.

        Args:
            configuration: Build intent. A snapshot is taken, so later edits
                do not affect the running build.
            input_path: Input handed to the engine.
            output_path: Destination .pkg path.

        Returns:
            False if a build is already running (nothing changes). True once
            the build was accepted; launch failures are then reported
            through the session's FAILED state, not raised.

        Raises:
            ValidationError: If the configuration does not validate. Raised
                before any file is written or process spawned.
        """
        logger = self.logger
        with self._lock:
            if self._session.state is BuildState.RUNNING:
                logger.verbose("BUILD", "Build already running; start rejected")
                return False

            configuration.require_valid()
            config = configuration.snapshot()

            session = BuildSession(self.log_limit)
            session.state = BuildState.RUNNING
            session.input_path = Path(input_path)
            session.output_path = Path(output_path)
            self._session = session

            logger.step(1, 3, "Staging packaging engine...")
            try:
                process = self._launch(session, config)
            except Exception as err:
                failure = BuildFailure.from_exception(err)
                logger.verbose("BUILD", f"Build failed before launch: {failure.message}")
                session.finish(failure)
                session.finished.set()
                return True

            session.process = process
            session.raise_progress(SPAWNED_PROGRESS)
            logger.step(3, 3, "Packaging...")
            logger.verbose("BUILD", f"Spawned engine (pid {process.pid})")

            chunks: queue.Queue[_Chunk] = queue.Queue()
            for name, stream in (("stdout", process.stdout), ("stderr", process.stderr)):
                threading.Thread(
                    target=_read_stream,
                    args=(name, stream, chunks),
                    name=f"brewpkg-{name}-reader",
                    daemon=True,
                ).start()
            session.consumer = threading.Thread(
                target=self._consume,
                args=(session, process, chunks),
                name="brewpkg-build-consumer",
                daemon=True,
            )
            session.consumer.start()
            return True

    def _launch(
        self, session: BuildSession, config: BuildConfiguration
    ) -> subprocess.Popen[str]:
        """Stage temporary files and spawn the engine. Caller holds the lock."""
        logger = self.logger
        engine = locate_engine(self.engine_path)
        logger.verbose("BUILD", f"Using engine: {engine}")
        engine_copy = stage_engine(engine, session.resources, self.temp_dir)

        preinstall_file = None
        postinstall_file = None
        if config.include_preinstall and config.preinstall_script:
            preinstall_file = write_script(
                "preinstall", config.preinstall_script, session.resources, self.temp_dir
            )
        if config.include_postinstall and config.postinstall_script:
            postinstall_file = write_script(
                "postinstall",
                config.postinstall_script,
                session.resources,
                self.temp_dir,
            )

        session.arguments = config.to_arguments(
            str(session.input_path),
            str(session.output_path),
            preinstall_file=str(preinstall_file) if preinstall_file else None,
            postinstall_file=str(postinstall_file) if postinstall_file else None,
        )
        logger.step(2, 3, "Launching packaging engine...")
        logger.debug("BUILD", f"argv: {' '.join(session.arguments)}")

        try:
            return subprocess.Popen(
                [str(engine_copy), *session.arguments],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except OSError as err:
            raise EngineLaunchError(f"Failed to launch build engine: {err}") from err

    def _consume(
        self,
        session: BuildSession,
        process: subprocess.Popen[str],
        chunks: queue.Queue[_Chunk],
    ) -> None:
        logger = self.logger
        open_streams = 2
        try:
            while open_streams:
                name, line = chunks.get()
                if line is None:
                    open_streams -= 1
                    continue
                with self._lock:
                    if session.state is not BuildState.RUNNING:
                        continue
                    session.record_output(line, name)
                logger.verbose("ENGINE", line.rstrip())

            returncode = process.wait()
            with self._lock:
                if session.state is BuildState.RUNNING:
                    failure = _outcome(returncode, session)
                    session.finish(failure)
                    if failure is None:
                        logger.verbose("BUILD", "Build completed successfully")
                    else:
                        logger.verbose("BUILD", failure.message)
        except Exception as err:
            with self._lock:
                if session.state is BuildState.RUNNING:
                    session.finish(BuildFailure.from_exception(err))
            raise
        finally:
            for stream in (process.stdout, process.stderr):
                if stream is not None:
                    stream.close()
            session.finished.set()

    def cancel(self) -> bool:
        """Cancel the running build.

        Sends SIGTERM to the engine's process group, moves the session to
        CANCELLED and removes temporary files. An engine still running
        ``kill_grace`` seconds later gets SIGKILL. Does not wait for the
        engine to exit or for its output to drain.

        Returns:
            True if a running build was cancelled, False otherwise.
        """
        with self._lock:
            session = self._session
            if session.state is not BuildState.RUNNING:
                return False

            process = session.process
            if process is not None and process.poll() is None:
                _signal_group(process, signal.SIGTERM)
                killer = threading.Timer(
                    self.kill_grace, _signal_group, args=(process, signal.SIGKILL)
                )
                killer.name = "brewpkg-engine-killer"
                killer.daemon = True
                killer.start()

            session.finish(BuildFailure(FailureKind.CANCELLED, "Build was cancelled"))
            self.logger.verbose("BUILD", "Build cancelled")
            if session.consumer is None:
                session.finished.set()
            return True

    def reset(self) -> None:
        """Return to IDLE with an empty log and zero progress.

        Does not wait for a cancelled engine to exit. Its consumer keeps
        draining into the old session, which is no longer reachable.

        Raises:
            BuildInProgressError: If a build is running.
        """
        with self._lock:
            if self._session.state is BuildState.RUNNING:
                raise BuildInProgressError("Cannot reset while a build is running")
            self._session = BuildSession(self.log_limit)

    def clear_log(self) -> None:
        with self._lock:
            self._session.log.clear()

    def snapshot(self) -> BuildResult:
        """Return the current session as an immutable BuildResult."""
        with self._lock:
            return self._result(self._session)

    def _result(self, session: BuildSession) -> BuildResult:
        from brewpkg.results import BuildResult

        with self._lock:
            return BuildResult(
                state=session.state,
                progress=session.progress,
                log=session.log.text,
                failure=session.failure,
                input_path=session.input_path,
                output_path=session.output_path,
                arguments=tuple(session.arguments),
            )

    def wait(self, timeout: float | None = None) -> BuildResult:
        """Block until the current build is finished, then snapshot it.

        Args:
            timeout: Seconds to wait. None waits indefinitely. On timeout
                the snapshot may still be RUNNING.

        Returns:
            BuildResult for the session that was current when called.
        """
        with self._lock:
            session = self._session
        if session.state is not BuildState.IDLE:
            session.finished.wait(timeout)
        return self._result(session)
