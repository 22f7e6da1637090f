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

"""Exception hierarchy for brewpkg.

This module defines a custom exception hierarchy that allows library users
to distinguish between different types of errors:

- ConfigError: Configuration file errors (YAML parse, unknown keys, missing files)
- ValidationError: Build configuration is incomplete or malformed
- PackagingError: Build-time failures (engine missing, engine exit code,
  cancellation, temporary file staging)
- BuildInProgressError: An operation that requires an idle orchestrator was
  attempted while a build is running

All exceptions inherit from BrewPkgError, allowing users to catch all brewpkg
errors with a single except clause if needed.

Build failures are normally reported through the terminal state of a build
session rather than raised. BuildResult.raise_for_status() turns a failed
result into the matching PackagingError subclass.

Example:
    Catching specific error types:
        ```python
        from brewpkg.exceptions import ProcessExitError, ValidationError

        try:
            orchestrator.start(config, Path("App.dmg"), Path("App.pkg"))
            orchestrator.wait().raise_for_status()
        except ValidationError as e:
            for message in e.errors:
                print(f"Invalid: {message}")
        except ProcessExitError as e:
            print(f"Engine failed with exit code {e.exit_code}")
        ```
"""

from __future__ import annotations

__all__ = [
    "BrewPkgError",
    "ConfigError",
    "ValidationError",
    "PackagingError",
    "EngineNotFoundError",
    "EngineLaunchError",
    "ProcessExitError",
    "BuildCancelledError",
    "TemporaryResourceError",
    "BuildInProgressError",
]


class BrewPkgError(Exception):
    """Base exception for all brewpkg errors."""

    pass


class ConfigError(BrewPkgError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, invalid structure)
    - Unknown or mistyped configuration keys
    - Missing configuration or script files
    """

    pass


class ValidationError(ConfigError):
    """Raised when a build configuration does not validate.

    Raised synchronously, before any process is spawned or any temporary
    file is written.

    Attributes:
        errors: Every validation message for the configuration, hard
            errors and advisory notes alike.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid build configuration: " + "; ".join(self.errors))


class PackagingError(BrewPkgError):
    """Raised for packaging/build-related errors.

    Base class for everything that can go wrong once a build has been
    accepted by the orchestrator.
    """

    pass


class EngineNotFoundError(PackagingError):
    """Raised when no packaging engine executable could be located."""

    pass


class EngineLaunchError(PackagingError):
    """Raised when the packaging engine exists but could not be spawned."""

    pass


class ProcessExitError(PackagingError):
    """Raised when the packaging engine ran and exited with a non-zero code.

    Attributes:
        exit_code: Exit code reported by the engine, verbatim.
        stderr_tail: Last lines the engine wrote to standard error.
    """

    def __init__(self, exit_code: int, stderr_tail: str = "") -> None:
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        message = f"Build process failed with exit code: {exit_code}"
        if stderr_tail:
            message += f"\n{stderr_tail}"
        super().__init__(message)


class BuildCancelledError(PackagingError):
    """Raised when a build was cancelled by the user."""

    pass


class TemporaryResourceError(PackagingError):
    """Raised when the engine copy or a script file could not be staged."""

    pass


class BuildInProgressError(BrewPkgError):
    """Raised when an idle-only operation is attempted during a build."""

    pass
