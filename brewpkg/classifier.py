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

"""Input classification for brewpkg.

Given the path a user dropped (disk image, zip archive, app bundle, folder
or bare binary), work out what it is and collect the metadata needed to
pre-fill a BuildConfiguration: a suggested identifier, a version and the
application icon.

Detection Logic:
    - Directory ending in .app: application bundle
    - Other directory: plain directory; its immediate children are searched
      for an application bundle, failing that for an executable file
    - File: .dmg is a disk image, .zip an archive, an extensionless file
      with the executable bit set is an executable, anything else unknown

Version Precedence:
    1. Application bundle Info.plist: CFBundleShortVersionString, then
       CFBundleVersion
    2. File name rules (see brewpkg.versioning.filename)

Icon:
    CFBundleIconFile from Info.plist, loaded from Contents/Resources/
    (".icns" appended when missing). A missing plist, key or file simply
    means no icon.

Classification only reads the filesystem. It never modifies the input.

Example:
    ```python
    from pathlib import Path
    from brewpkg.classifier import classify

    info = classify(Path("~/Downloads/Tool-1.2.3.zip").expanduser())
    print(info.type.description, info.version, info.suggested_identifier)
    # ZIP Archive 1.2.3 com.company.tool-1.2.3
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from pathlib import Path
import plistlib
from typing import Any

from brewpkg.versioning import version_from_filename

IDENTIFIER_STEM = "com.company."

_INFO_PLIST = Path("Contents") / "Info.plist"
_RESOURCES = Path("Contents") / "Resources"


class InputType(str, Enum):
    DISK_IMAGE = "diskImage"
    ARCHIVE = "archive"
    APP_BUNDLE = "appBundle"
    DIRECTORY = "directory"
    EXECUTABLE = "executable"
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return _TYPE_DESCRIPTIONS[self]


_TYPE_DESCRIPTIONS = {
    InputType.DISK_IMAGE: "Disk Image",
    InputType.ARCHIVE: "ZIP Archive",
    InputType.APP_BUNDLE: "Application Bundle",
    InputType.DIRECTORY: "Directory",
    InputType.EXECUTABLE: "Executable",
    InputType.UNKNOWN: "File",
}

_EXTENSION_TYPES = {
    ".dmg": InputType.DISK_IMAGE,
    ".zip": InputType.ARCHIVE,
}


@dataclass(frozen=True)
class InputDescriptor:
    """What the classifier learned about an input path.

    Attributes:
        path: The classified path.
        size: Size in bytes (recursive total for directories).
        type: Classified input type.
        app_name: Bundle directory name (e.g. "My App.app"), if one was found.
        binary_name: Executable file name, if one was found.
        version: Detected version, if any.
        version_source: Where the version came from ("bundle" or
            "filename:<rule>").
        icon: Raw bytes of the bundle icon, if any.
    """

    path: Path
    size: int
    type: InputType
    app_name: str | None = None
    binary_name: str | None = None
    version: str | None = None
    version_source: str | None = None
    icon: bytes | None = None

    @property
    def suggested_identifier(self) -> str:
        if self.app_name:
            base = self.app_name
        elif self.binary_name:
            base = self.binary_name
        else:
            base = self.path.stem
        clean = base.replace(" ", "").replace(".app", "").lower()
        return f"{IDENTIFIER_STEM}{clean}"

    @property
    def formatted_size(self) -> str:
        return format_size(self.size)


def format_size(size: int) -> str:
    """Format a byte count with decimal units ("12.3 MB")."""
    if size < 1000:
        return f"{size} bytes"
    value = float(size)
    for unit in ("KB", "MB", "GB", "TB"):
        value /= 1000
        if value < 1000 or unit == "TB":
            return f"{value:.1f} {unit}"
    return f"{size} bytes"


def _path_size(path: Path) -> int:
    if not path.is_dir():
        return path.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += (Path(root) / name).lstat().st_size
            except OSError:
                continue
    return total


def _is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _read_info_plist(bundle: Path) -> dict[str, Any] | None:
    """Return the bundle's Info.plist as a dict, or None when unreadable."""
    plist_path = bundle / _INFO_PLIST
    try:
        with plist_path.open("rb") as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError):
        return None
    return data if isinstance(data, dict) else None


def bundle_version(info: dict[str, Any]) -> str | None:
    """Short version string, falling back to the build version."""
    for key in ("CFBundleShortVersionString", "CFBundleVersion"):
        value = info.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def bundle_icon(bundle: Path, info: dict[str, Any]) -> bytes | None:
    icon_name = info.get("CFBundleIconFile")
    if not isinstance(icon_name, str) or not icon_name:
        return None
    if not icon_name.endswith(".icns"):
        icon_name = f"{icon_name}.icns"
    try:
        return (bundle / _RESOURCES / icon_name).read_bytes()
    except OSError:
        return None


def _find_app_bundle(directory: Path) -> Path | None:
    try:
        children = sorted(directory.iterdir())
    except OSError:
        return None
    return next((c for c in children if c.suffix == ".app"), None)


def _find_executable(directory: Path) -> Path | None:
    try:
        children = sorted(directory.iterdir())
    except OSError:
        return None
    return next((c for c in children if _is_executable_file(c)), None)


def classify(path: Path) -> InputDescriptor:
    """Classify an input path and derive its metadata.

    Args:
        path: File or directory to inspect.

    Returns:
        InputDescriptor for the path.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    from brewpkg.logging import get_global_logger

    logger = get_global_logger()
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")

    size = _path_size(path)
    app_name: str | None = None
    binary_name: str | None = None
    bundle: Path | None = None

    if path.is_dir():
        if path.suffix == ".app":
            input_type = InputType.APP_BUNDLE
            bundle = path
        else:
            input_type = InputType.DIRECTORY
            bundle = _find_app_bundle(path)
            if bundle is None:
                executable = _find_executable(path)
                if executable is not None:
                    binary_name = executable.name
                    logger.verbose("CLASSIFY", f"Found executable: {binary_name}")
    else:
        suffix = path.suffix.lower()
        input_type = _EXTENSION_TYPES.get(suffix, InputType.UNKNOWN)
        if not suffix and _is_executable_file(path):
            input_type = InputType.EXECUTABLE
            binary_name = path.name

    version: str | None = None
    version_source: str | None = None
    icon: bytes | None = None

    if bundle is not None:
        app_name = bundle.name
        logger.verbose("CLASSIFY", f"Found application bundle: {app_name}")
        info = _read_info_plist(bundle)
        if info is not None:
            version = bundle_version(info)
            version_source = "bundle" if version else None
            icon = bundle_icon(bundle, info)

    if version is None:
        discovered = version_from_filename(path.name)
        if discovered is not None:
            version, version_source = discovered.version, discovered.source

    logger.verbose(
        "CLASSIFY",
        f"{path.name}: {input_type.description}, version={version or 'unknown'}",
    )

    return InputDescriptor(
        path=path,
        size=size,
        type=input_type,
        app_name=app_name,
        binary_name=binary_name,
        version=version,
        version_source=version_source,
        icon=icon,
    )
