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

"""Logging interface for brewpkg.

Library modules report progress through a small logger protocol instead of
printing directly, so the orchestrator, classifier and identity discovery
stay usable from a GUI, a test or the CLI alike.

Output levels:

- Step: Always printed (numbered progress indicators)
- Verbose: Printed when verbose mode is enabled (includes engine output)
- Debug: Printed when debug mode is enabled (implies verbose)

Prefixes used by the library: CONFIG, CLASSIFY, IDENTITY, BUILD, ENGINE.

Example:
    Configure the global logger once, at the edge of the program:
        ```python
        from brewpkg.logging import get_logger, set_global_logger

        set_global_logger(get_logger(verbose=True))
        ```

    Use in library code:
        ```python
        from brewpkg.logging import get_global_logger

        logger = get_global_logger()
        logger.step(1, 3, "Staging engine...")
        logger.verbose("BUILD", "Spawned engine (pid 4242)")
        logger.debug("BUILD", "argv: -i com.acme.app ...")
        ```

Note:
    The default global logger is silent. Engine output is relayed from the
    orchestrator's consumer thread, so implementations must tolerate being
    called from a thread other than the one that started the build.
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator.

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "BUILD", "ENGINE").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message.

        Args:
            prefix: Message prefix (e.g., "CLASSIFY", "IDENTITY").
            message: Log message.
        """
        ...


class DefaultLogger:
    """Logger that writes CLI-formatted lines to a text stream.

    Args:
        verbose: If True, print verbose messages.
        debug: If True, print debug messages (implies verbose).
        stream: Destination stream. Default is sys.stdout, looked up at
            write time so pytest's capture works.
    """

    def __init__(
        self,
        verbose: bool = False,
        debug: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self._verbose = verbose or debug
        self._debug = debug
        self._stream = stream

    def _write(self, line: str) -> None:
        print(line, file=self._stream or sys.stdout, flush=True)

    def step(self, step: int, total: int, message: str) -> None:
        self._write(f"[{step}/{total}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            self._write(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            self._write(f"[{prefix}] {message}")


class SilentLogger:
    """Logger that suppresses all output."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Get a logger instance with specified verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).

    Returns:
        A DefaultLogger writing to stdout.
    """
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Return the logger library code should use (silent by default)."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        Components that accept a ``logger`` argument prefer it over the
        global one, which is the better choice when several orchestrators
        run side by side.
    """
    global _global_logger
    _global_logger = logger
