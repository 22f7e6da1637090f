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

"""Build configuration model for brewpkg.

BuildConfiguration holds what the user wants built: package identifier,
version, install location, optional signing identity, script and permission
flags, and the package mode. It validates itself and serializes to the
packaging engine's argument vector. Nothing in this module touches the
filesystem or spawns processes.

Engine argument order (fixed):

    -i <identifier> -v <version> -l <install_location> -p <input> -o <output>
    [-s <signing_identity>] [--preinstall] [--postinstall]
    [--preserve-permissions] [--file-deployment-mode
    [--create-intermediate-folders]] [--preinstall-file <path>]
    [--postinstall-file <path>] --verbose

Example:
    ```python
    from brewpkg.config.model import BuildConfiguration

    config = BuildConfiguration(
        identifier="com.acme.app",
        version="2.0",
        install_location="/Applications",
        include_preinstall=True,
    )
    ok, errors = config.validate()
    argv = config.to_arguments("/tmp/a.dmg", "/tmp/a.pkg")
    ```
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
import os
from typing import TYPE_CHECKING, Any

from brewpkg.exceptions import ConfigError, ValidationError

if TYPE_CHECKING:
    from brewpkg.classifier import InputDescriptor

__all__ = ["BuildConfiguration", "PackageMode"]

DEFAULT_VERSION = "1.0"

_TEXT_KEYS = (
    "identifier",
    "version",
    "install_location",
    "preinstall_script",
    "postinstall_script",
)
_FLAG_KEYS = (
    "include_preinstall",
    "include_postinstall",
    "preserve_permissions",
    "create_intermediate_folders",
)

DEFAULT_PREINSTALL_SCRIPT = (
    "#!/bin/bash\n"
    "# Pre-installation script\n"
    'echo "Preparing installation..."\n'
    "exit 0"
)
DEFAULT_POSTINSTALL_SCRIPT = (
    "#!/bin/bash\n"
    "# Post-installation script\n"
    'echo "Installation complete."\n'
    "exit 0"
)


class PackageMode(str, Enum):
    """Whether the package installs an application or deploys files."""

    APPLICATION = "application"
    FILE_DEPLOYMENT = "fileDeployment"

    @property
    def display_name(self) -> str:
        return "Application" if self is PackageMode.APPLICATION else "File Deployment"

    @classmethod
    def parse(cls, value: str | PackageMode) -> PackageMode:
        """Accept the enum, its value, or the snake_case spelling."""
        if isinstance(value, PackageMode):
            return value
        normalized = str(value).strip().replace("_", "").replace("-", "").lower()
        for mode in cls:
            if mode.value.lower() == normalized:
                return mode
        raise ConfigError(
            f"Unknown package_mode: {value!r}. "
            f"Supported: {', '.join(m.value for m in cls)}"
        )


@dataclass
class BuildConfiguration:
    """Build intent for one package.

    Attributes:
        identifier: Package identifier in reverse domain notation.
        version: Package version string.
        install_location: Absolute path the payload installs to.
        signing_identity: Installer signing identity, or None to skip signing.
        include_preinstall: Ship a preinstall script.
        include_postinstall: Ship a postinstall script.
        preserve_permissions: Keep payload file permissions as-is.
        package_mode: Application install or file deployment.
        create_intermediate_folders: Create missing parent folders of the
            install location (file deployment mode only).
        preinstall_script: Preinstall script text.
        postinstall_script: Postinstall script text.
    """

    identifier: str = ""
    version: str = DEFAULT_VERSION
    install_location: str = "/Applications"
    signing_identity: str | None = None
    include_preinstall: bool = False
    include_postinstall: bool = False
    preserve_permissions: bool = False
    package_mode: PackageMode = PackageMode.APPLICATION
    create_intermediate_folders: bool = False
    preinstall_script: str = DEFAULT_PREINSTALL_SCRIPT
    postinstall_script: str = DEFAULT_POSTINSTALL_SCRIPT

    @property
    def is_valid(self) -> bool:
        return bool(self.identifier and self.version and self.install_location)

    @property
    def validation_errors(self) -> list[str]:
        """Every validation message, hard errors and advisory notes alike."""
        return [message for message, _ in self._issues()]

    @property
    def validation_warnings(self) -> list[str]:
        """Advisory messages only."""
        return [message for message, hard in self._issues() if not hard]

    def _issues(self) -> list[tuple[str, bool]]:
        """Return (message, is_hard_error) pairs in field order."""
        issues: list[tuple[str, bool]] = []

        if not self.identifier:
            issues.append(("identifier is required", True))
        elif "." not in self.identifier:
            # The engine accepts flat identifiers.
            issues.append(
                (
                    "identifier should use reverse domain notation (e.g., com.example.app)",
                    False,
                )
            )

        if not self.version:
            issues.append(("version is required", True))

        if not self.install_location:
            issues.append(("install location is required", True))
        elif not self.install_location.startswith("/"):
            issues.append(("install location must be an absolute path", True))

        return issues

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the current field values.

        Returns:
            A tuple (ok, errors). ok is False when a required field is empty
            or the install location is not absolute. errors also carries
            advisory messages, so it can be non-empty while ok is True.
        """
        issues = self._issues()
        ok = not any(hard for _, hard in issues)
        return ok, [message for message, _ in issues]

    def require_valid(self) -> None:
        """Raise ValidationError unless validate() succeeds."""
        ok, errors = self.validate()
        if not ok:
            raise ValidationError(errors)

    def to_arguments(
        self,
        input_path: str,
        output_path: str,
        preinstall_file: str | None = None,
        postinstall_file: str | None = None,
    ) -> list[str]:
        """Build the packaging engine's argument vector.

        Args:
            input_path: Dropped input (dmg, zip, app, directory or binary).
            output_path: Destination .pkg path.
            preinstall_file: Staged preinstall script, if one was written.
            postinstall_file: Staged postinstall script, if one was written.

        Returns:
            The argument list, in the engine's fixed order.
        """
        args: list[str] = []
        args += ["-i", self.identifier]
        args += ["-v", self.version]
        args += ["-l", self.install_location]
        args += ["-p", str(input_path)]
        args += ["-o", str(output_path)]

        if self.signing_identity:
            args += ["-s", self.signing_identity]
        if self.include_preinstall:
            args.append("--preinstall")
        if self.include_postinstall:
            args.append("--postinstall")
        if self.preserve_permissions:
            args.append("--preserve-permissions")
        if self.package_mode is PackageMode.FILE_DEPLOYMENT:
            args.append("--file-deployment-mode")
            if self.create_intermediate_folders:
                args.append("--create-intermediate-folders")
        if preinstall_file:
            args += ["--preinstall-file", str(preinstall_file)]
        if postinstall_file:
            args += ["--postinstall-file", str(postinstall_file)]

        args.append("--verbose")
        return args

    def snapshot(self) -> BuildConfiguration:
        """Return an independent copy for a build to consume."""
        return replace(self)

    def with_input(
        self, descriptor: InputDescriptor, *, keep_version: bool = False
    ) -> BuildConfiguration:
        """Return a copy seeded from a classified input.

        Only fields still at their empty/default value are filled: the
        identifier from the descriptor's suggested identifier, and the
        version from the detected version.

        Args:
            descriptor: The classified input.
            keep_version: Leave the version alone. A version the caller set
                to the default "1.0" looks the same as one never set, so
                pass True when the version was chosen on purpose.
        """
        seeded = replace(self)
        if not seeded.identifier:
            seeded.identifier = descriptor.suggested_identifier
        if (
            not keep_version
            and descriptor.version
            and seeded.version in ("", DEFAULT_VERSION)
        ):
            seeded.version = descriptor.version
        return seeded

    def with_home_expanded(self) -> BuildConfiguration:
        """Return a copy whose ``~`` install location names the user's home.

        validate() only accepts absolute locations, so a home-relative
        location has to go through here first.
        """
        expanded = replace(self)
        if expanded.install_location.startswith("~"):
            expanded.install_location = os.path.expanduser(expanded.install_location)
        return expanded

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["package_mode"] = self.package_mode.value
        return data

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> BuildConfiguration:
        """Create a configuration from a plain mapping (e.g. parsed YAML).

        Values are not coerced: YAML reads ``version: 1.10`` as the float
        1.1, so a version must be quoted to survive.

        Raises:
            ConfigError: If the mapping holds unknown keys, a bad
                package_mode, or a value of the wrong type.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

        values = dict(data)
        if "package_mode" in values:
            values["package_mode"] = PackageMode.parse(values["package_mode"])

        problems: list[str] = []
        for key in _TEXT_KEYS:
            if key in values and values[key] is None:
                # An empty YAML value; validate() reports it as missing.
                values[key] = ""
            elif key in values and not isinstance(values[key], str):
                problems.append(
                    f"{key} must be a string (got {type(values[key]).__name__} "
                    f"{values[key]!r}; quote it in YAML)"
                )
        signing = values.get("signing_identity")
        if signing is not None and not isinstance(signing, str):
            problems.append(
                f"signing_identity must be a string (got {type(signing).__name__})"
            )
        for key in _FLAG_KEYS:
            if key in values and not isinstance(values[key], bool):
                problems.append(f"{key} must be true or false (got {values[key]!r})")
        if problems:
            raise ConfigError("; ".join(problems))
        return cls(**values)
