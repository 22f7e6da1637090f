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

"""Build configuration file validation.

This module checks a configuration file without locating the engine,
writing temporary files or spawning anything. This is useful for quick
feedback while editing a configuration and in CI pipelines.

Validation Checks:

- The file exists and its YAML parses (including defaults/org.yaml)
- The layout is a mapping with only known keys
- package_mode is supported and script files are readable
- identifier, version and install_location pass BuildConfiguration checks
- engine.path, when set, points at an existing file (warning otherwise)

Example:
    Validate a configuration and handle results:
        ```python
        from pathlib import Path
        from brewpkg.validation import validate_config_file

        result = validate_config_file(Path("packages/tool.yaml"))
        if result.status == "valid":
            print("Configuration is valid")
        else:
            for error in result.errors:
                print(f"Error: {error}")
        ```
"""

from __future__ import annotations

from pathlib import Path

from brewpkg.config.loader import load_build_config
from brewpkg.exceptions import ConfigError
from brewpkg.results import ValidationResult

__all__ = ["validate_config_file"]


def validate_config_file(config_path: Path) -> ValidationResult:
    """Validate a build configuration file.

    Does NOT:

    - Check that the engine runs
    - Check that the signing identity is installed
    - Classify or read the package input

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        ValidationResult with status "valid" or "invalid". Loader failures
            and hard configuration errors go in errors; advisory notes go in
            warnings.
    """
    from brewpkg.logging import get_global_logger

    logger = get_global_logger()
    errors: list[str] = []
    warnings: list[str] = []

    logger.verbose("CONFIG", f"Validating configuration: {config_path}")

    try:
        loaded = load_build_config(config_path)
    except ConfigError as err:
        errors.append(str(err))
        return ValidationResult(
            status="invalid",
            errors=errors,
            warnings=warnings,
            config_path=str(config_path),
        )

    configuration = loaded.configuration
    if configuration.install_location.startswith("~"):
        # brewpkg build expands ~ the same way before validating.
        configuration = configuration.with_home_expanded()
        warnings.append(
            f"install_location is home-relative; it expands to "
            f"{configuration.install_location} on this machine"
        )
    warnings.extend(configuration.validation_warnings)
    ok, messages = configuration.validate()
    if not ok:
        errors.extend(m for m in messages if m not in warnings)

    if loaded.engine_path is not None and not loaded.engine_path.is_file():
        warnings.append(f"engine.path does not exist: {loaded.engine_path}")

    if configuration.include_preinstall and not configuration.preinstall_script:
        warnings.append("include_preinstall is set but preinstall_script is empty")
    if configuration.include_postinstall and not configuration.postinstall_script:
        warnings.append("include_postinstall is set but postinstall_script is empty")

    status = "valid" if not errors else "invalid"
    if status == "valid":
        logger.verbose("CONFIG", "[OK] Configuration is valid")
    else:
        logger.verbose("CONFIG", f"[ERROR] Configuration has {len(errors)} error(s)")

    return ValidationResult(
        status=status,
        errors=errors,
        warnings=warnings,
        config_path=str(config_path),
    )
