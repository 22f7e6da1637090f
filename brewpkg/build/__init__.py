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

This package runs the packaging engine and tracks each build session:

- orchestrator: BuildOrchestrator (start, cancel, reset, wait)
- session: BuildSession state, bounded log, temporary file ownership
- progress: Progress estimation from engine output
- engine: Engine lookup and temp file staging

Example:
    from pathlib import Path
    from brewpkg.build import BuildOrchestrator
    from brewpkg.config import BuildConfiguration

    orchestrator = BuildOrchestrator(engine_path=Path("brewpkg-engine.sh"))
    config = BuildConfiguration(identifier="com.acme.tool", version="1.2.0")

    if orchestrator.start(config, Path("tool-1.2.0.zip"), Path("tool.pkg")):
        result = orchestrator.wait()
        print(f"{result.state.value}: {result.progress:.0%}")
"""

from .engine import ENGINE_ENV_VAR, locate_engine
from .orchestrator import BuildOrchestrator
from .progress import PROGRESS_RULES, ProgressRule, estimate_progress
from .session import BuildFailure, BuildLog, BuildState, FailureKind

__all__ = [
    "BuildOrchestrator",
    "BuildFailure",
    "BuildLog",
    "BuildState",
    "FailureKind",
    "ENGINE_ENV_VAR",
    "locate_engine",
    "PROGRESS_RULES",
    "ProgressRule",
    "estimate_progress",
]
