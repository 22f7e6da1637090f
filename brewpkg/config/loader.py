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

"""
Build configuration file loading for brewpkg.

A build configuration file is YAML. It can be layered over organization
defaults so a team can pin its signing identity or install location once and
keep per-package files short.

Configuration Layers
--------------------
1. **Organization defaults** (defaults/org.yaml)
   - Found by walking upward from the configuration file
   - Optional
2. **Package configuration** (the file passed in)
   - Always required
   - Overrides organization defaults

Merge Behavior
--------------
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced
  - **Scalars**: Overwritten

File Layout
-----------
Package keys may sit at the top level or under ``package:``. An optional
``engine:`` mapping carries the packaging engine ``path``::

    package:
      identifier: com.acme.tool
      version: "1.2.0"
      install_location: /usr/local/bin
      include_postinstall: true
      postinstall_script_file: scripts/postinstall.sh
    engine:
      path: ../engine/brewpkg-engine.sh

Path Resolution
---------------
Relative paths are resolved against the CONFIG FILE location:
  - package.preinstall_script_file / package.postinstall_script_file
    (read into preinstall_script / postinstall_script)
  - engine.path

Error Handling
--------------
Every failure raises ConfigError with the original exception chained.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from brewpkg.config.model import BuildConfiguration
from brewpkg.exceptions import ConfigError

_SCRIPT_FILE_KEYS = {
    "preinstall_script_file": "preinstall_script",
    "postinstall_script_file": "postinstall_script",
}


@dataclass(frozen=True)
class LoadedConfig:
    """Result of loading a configuration file.

    Attributes:
        configuration: The build configuration described by the file.
        engine_path: Packaging engine path from ``engine.path``, if set.
        source_path: The configuration file that was loaded.
        defaults_path: Organization defaults merged underneath, if found.
        package_keys: Package keys the file or its defaults set explicitly.
    """

    configuration: BuildConfiguration
    engine_path: Path | None
    source_path: Path
    defaults_path: Path | None
    package_keys: frozenset[str] = frozenset()


def _load_yaml_file(p: Path) -> Any:
    """
    Load a YAML file and return the parsed Python object.

    Raises:
      ConfigError - when the file is missing, unparsable, or empty
    """
    if not p.exists():
        raise ConfigError(f"file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    return data


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _find_defaults_file(start_dir: Path) -> Path | None:
    """Walk upward from 'start_dir' looking for 'defaults/org.yaml'."""
    for parent in [start_dir] + list(start_dir.parents):
        candidate = parent / "defaults" / "org.yaml"
        if candidate.exists():
            return candidate
    return None


def _normalize_layout(data: Any, source: Path) -> dict[str, Any]:
    """Return {"package": {...}, "engine": {...}} from either file layout."""
    if not isinstance(data, dict):
        raise ConfigError(f"top-level YAML must be a mapping (dict): {source}")

    engine = data.get("engine", {}) or {}
    if not isinstance(engine, dict):
        raise ConfigError(f"'engine' must be a mapping: {source}")

    if "package" in data:
        package = data["package"] or {}
        extra = sorted(set(data) - {"package", "engine"})
        if extra:
            raise ConfigError(
                f"Unexpected top-level key(s) next to 'package': {', '.join(extra)}"
            )
    else:
        package = {k: v for k, v in data.items() if k != "engine"}

    if not isinstance(package, dict):
        raise ConfigError(f"'package' must be a mapping: {source}")
    return {"package": package, "engine": engine}


def _resolve_known_paths(cfg: dict[str, Any], config_dir: Path) -> None:
    """
    Resolve relative paths and read script files. Modifies cfg in place.
    """
    package = cfg["package"]
    for file_key, text_key in _SCRIPT_FILE_KEYS.items():
        raw_path = package.pop(file_key, None)
        if not raw_path:
            continue
        script_path = Path(raw_path).expanduser()
        if not script_path.is_absolute():
            script_path = (config_dir / script_path).resolve()
        try:
            package[text_key] = script_path.read_text(encoding="utf-8")
        except OSError as err:
            raise ConfigError(f"Cannot read {file_key}: {script_path}: {err}") from err

    raw_engine = cfg["engine"].get("path")
    if isinstance(raw_engine, str) and raw_engine:
        engine_path = Path(raw_engine).expanduser()
        if not engine_path.is_absolute():
            engine_path = (config_dir / engine_path).resolve()
        cfg["engine"]["path"] = str(engine_path)


def load_effective_config(config_path: Path) -> dict[str, Any]:
    """
    Load and merge the effective configuration mapping for a file.

    Steps
      1) Read the configuration YAML.
      2) Find defaults/org.yaml by scanning upwards.
      3) Merge: org defaults -> file (dicts deep-merge, lists replace).
      4) Resolve known relative paths and read script files.

    Returns
      {"package": {...}, "engine": {...}, "_defaults_path": str | None}

    Raises
      ConfigError for missing files, YAML errors or an invalid layout.
    """
    from brewpkg.logging import get_global_logger

    logger = get_global_logger()
    config_path = config_path.resolve()
    config_dir = config_path.parent

    logger.verbose("CONFIG", f"Loading configuration: {config_path}")
    file_cfg = _normalize_layout(_load_yaml_file(config_path), config_path)

    merged: dict[str, Any] = {"package": {}, "engine": {}}
    defaults_path = _find_defaults_file(config_dir)
    if defaults_path is not None and defaults_path != config_path:
        logger.verbose("CONFIG", f"Merging defaults: {defaults_path}")
        defaults_cfg = _normalize_layout(_load_yaml_file(defaults_path), defaults_path)
        # Script files in defaults resolve against the defaults file.
        _resolve_known_paths(defaults_cfg, defaults_path.parent)
        merged = _deep_merge_dicts(merged, defaults_cfg)

    _resolve_known_paths(file_cfg, config_dir)
    merged = _deep_merge_dicts(merged, file_cfg)
    merged["_defaults_path"] = str(defaults_path) if defaults_path else None

    logger.debug("CONFIG", f"Effective package keys: {', '.join(merged['package'])}")
    return merged


def load_build_config(config_path: Path) -> LoadedConfig:
    """Load a YAML build configuration file into a BuildConfiguration.

    Args:
        config_path: Path to the YAML file.

    Returns:
        LoadedConfig with the configuration and the optional engine path.

    Raises:
        ConfigError: If the file cannot be loaded or holds unknown keys.

    Example:
        ```python
        loaded = load_build_config(Path("packages/tool.yaml"))
        ok, errors = loaded.configuration.validate()
        ```
    """
    merged = load_effective_config(config_path)
    configuration = BuildConfiguration.from_mapping(merged["package"])
    engine_raw = merged["engine"].get("path")
    defaults_raw = merged["_defaults_path"]

    return LoadedConfig(
        configuration=configuration,
        engine_path=Path(engine_raw) if engine_raw else None,
        source_path=config_path.resolve(),
        defaults_path=Path(defaults_raw) if defaults_raw else None,
        package_keys=frozenset(merged["package"]),
    )
