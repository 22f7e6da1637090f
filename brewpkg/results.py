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

"""Public API return types for brewpkg.

All dataclasses are frozen (immutable) so a result handed to a caller can
not drift from the session it was taken from.

Example:
    ```python
    from brewpkg.results import BuildResult

    result: BuildResult = orchestrator.wait()
    if result.succeeded:
        print(f"Built {result.output_path}")
    ```

Note:
    Only public API return types belong in this module. Domain types
    (InputDescriptor, SigningIdentity, BuildFailure) stay co-located with
    their logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from brewpkg.build.session import BuildFailure, BuildState


@dataclass(frozen=True)
class BuildResult:
    """Snapshot of a build session.

    Attributes:
        state: Session state when the snapshot was taken.
        progress: Progress fraction in [0, 1].
        log: Accumulated engine output (bounded).
        failure: Failure detail for FAILED and CANCELLED sessions.
        input_path: Input handed to the engine, if a build was started.
        output_path: Package path requested from the engine.
        arguments: Engine argument vector, without the executable.
    """

    state: BuildState
    progress: float
    log: str
    failure: BuildFailure | None = None
    input_path: Path | None = None
    output_path: Path | None = None
    arguments: tuple[str, ...] = field(default=())

    @property
    def succeeded(self) -> bool:
        return self.state is BuildState.COMPLETED

    @property
    def exit_code(self) -> int | None:
        return self.failure.exit_code if self.failure else None

    def raise_for_status(self) -> None:
        """Raise the PackagingError matching a failed or cancelled build."""
        if self.failure is not None and self.state in (
            BuildState.FAILED,
            BuildState.CANCELLED,
        ):
            raise self.failure.to_exception()


@dataclass(frozen=True)
class ValidationResult:
    """Result from validating a configuration file.

    Attributes:
        status: "valid" or "invalid".
        errors: Blocking error messages (empty if valid).
        warnings: Advisory messages.
        config_path: String path to the validated file.
    """

    status: str
    errors: list[str]
    warnings: list[str]
    config_path: str
