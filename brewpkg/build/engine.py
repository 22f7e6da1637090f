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

"""Packaging engine location and staging for brewpkg.

The packaging engine is an external executable (normally the
``brewpkg-engine.sh`` shell script) that does the actual pkgbuild /
productbuild work. This module finds it and stages the per-build temporary
files: a private executable copy of the engine and the optional
preinstall/postinstall scripts.

Lookup order:
    1. Explicit path (constructor argument, CLI --engine, config engine.path)
    2. BREWPKG_ENGINE environment variable
    3. ``brewpkg-engine`` or ``brewpkg-engine.sh`` on PATH

Every staged file is registered with the build's TemporaryResources before
this module returns, so a failure half-way through still gets cleaned up.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import tempfile
import uuid

from brewpkg.build.session import TemporaryResources
from brewpkg.exceptions import EngineNotFoundError, TemporaryResourceError

ENGINE_ENV_VAR = "BREWPKG_ENGINE"
ENGINE_NAMES = ("brewpkg-engine", "brewpkg-engine.sh")
EXECUTABLE_MODE = 0o755


def locate_engine(explicit: Path | None = None) -> Path:
    """Find the packaging engine executable.

    Args:
        explicit: Path given by the caller, checked first.

    Returns:
        Path to an existing engine file.

    Raises:
        EngineNotFoundError: If no candidate exists.
    """
    candidates: list[Path] = []
    if explicit is not None:
        candidates.append(Path(explicit).expanduser())
    env_value = os.environ.get(ENGINE_ENV_VAR)
    if env_value:
        candidates.append(Path(env_value).expanduser())
    for name in ENGINE_NAMES:
        found = shutil.which(name)
        if found:
            candidates.append(Path(found))

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    searched = ", ".join(str(c) for c in candidates) or "no candidates"
    raise EngineNotFoundError(f"Build engine script not found ({searched})")


def _temp_path(temp_dir: Path | None, prefix: str, suffix: str) -> Path:
    base = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
    return base / f"{prefix}-{uuid.uuid4()}{suffix}"


def stage_engine(
    engine: Path, resources: TemporaryResources, temp_dir: Path | None = None
) -> Path:
    """Copy the engine to a private executable temp file.

    Raises:
        TemporaryResourceError: If the copy or chmod fails.
    """
    target = _temp_path(temp_dir, "brewpkg-engine", engine.suffix)
    resources.add(target)
    try:
        shutil.copyfile(engine, target)
        target.chmod(EXECUTABLE_MODE)
    except OSError as err:
        raise TemporaryResourceError(f"Failed to stage engine copy: {err}") from err
    return target


def write_script(
    kind: str,
    text: str,
    resources: TemporaryResources,
    temp_dir: Path | None = None,
) -> Path:
    """Write a preinstall/postinstall script to an executable temp file.

    Args:
        kind: "preinstall" or "postinstall"; used in the file name.
        text: Script body.
        resources: Owner of the new file.
        temp_dir: Directory for the file. Default: system temp dir.

    Raises:
        TemporaryResourceError: If the file cannot be written.
    """
    target = _temp_path(temp_dir, kind, ".sh")
    resources.add(target)
    try:
        target.write_text(text, encoding="utf-8")
        target.chmod(EXECUTABLE_MODE)
    except OSError as err:
        raise TemporaryResourceError(f"Failed to write {kind} script: {err}") from err
    return target
