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

"""Build configuration for brewpkg.

Public API:

- BuildConfiguration / PackageMode: build intent, validation, engine argv
- load_build_config: Load a YAML configuration (layered over defaults/org.yaml)
- PresetRegistry: Read-only registry of example configurations

Example:
    ```python
    from pathlib import Path
    from brewpkg.config import load_build_config

    loaded = load_build_config(Path("packages/tool.yaml"))
    print(loaded.configuration.identifier)
    ```
"""

from .loader import LoadedConfig, load_build_config, load_effective_config
from .model import BuildConfiguration, PackageMode
from .presets import PackagePreset, PresetCategory, PresetDetails, PresetRegistry

__all__ = [
    "BuildConfiguration",
    "PackageMode",
    "LoadedConfig",
    "load_build_config",
    "load_effective_config",
    "PackagePreset",
    "PresetCategory",
    "PresetDetails",
    "PresetRegistry",
]
