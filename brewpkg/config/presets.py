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

"""Read-only registry of example package configurations.

A PresetRegistry is constructed once and handed to whoever needs it (the
CLI, a GUI). There is no module-level singleton; tests build their own
registry with their own presets.

Example:
    ```python
    from brewpkg.config.presets import PresetRegistry

    registry = PresetRegistry.builtin()
    for preset in registry.search("teams"):
        config = preset.configuration_copy()
    ```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from brewpkg.config.model import BuildConfiguration


class PresetCategory(str, Enum):
    ENTERPRISE = "Enterprise"


@dataclass(frozen=True)
class PresetDetails:
    requirements: tuple[str, ...] = ()
    supported_formats: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackagePreset:
    """A named, documented starting configuration.

    The preset holds its settings as a read-only mapping. Every access to
    ``configuration`` builds a new BuildConfiguration, so callers can edit
    what they get without touching the preset or any other registry.

    Attributes:
        name: Display name.
        description: One-line description.
        category: Grouping used for filtering.
        settings: BuildConfiguration fields the preset applies, as accepted
            by BuildConfiguration.from_mapping().
        hint: Short usage hint.
        details: Optional requirements, supported formats and notes.
    """

    name: str
    description: str
    category: PresetCategory
    settings: Mapping[str, Any]
    hint: str = ""
    details: PresetDetails | None = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))

    @property
    def configuration(self) -> BuildConfiguration:
        return BuildConfiguration.from_mapping(dict(self.settings))

    def configuration_copy(self) -> BuildConfiguration:
        return self.configuration


class PresetRegistry:
    """Immutable collection of presets with category filter and search."""

    def __init__(self, presets: Iterable[PackagePreset]) -> None:
        self._presets = tuple(presets)

    def __len__(self) -> int:
        return len(self._presets)

    def __iter__(self):
        return iter(self._presets)

    def presets(self, category: PresetCategory | None = None) -> list[PackagePreset]:
        if category is None:
            return list(self._presets)
        return [p for p in self._presets if p.category == category]

    def search(self, query: str) -> list[PackagePreset]:
        """Case-insensitive match on name, description, hint and category."""
        if not query:
            return list(self._presets)
        needle = query.lower()
        return [
            p
            for p in self._presets
            if needle in p.name.lower()
            or needle in p.description.lower()
            or needle in p.hint.lower()
            or needle in p.category.value.lower()
        ]

    def get(self, name: str) -> PackagePreset | None:
        for preset in self._presets:
            if preset.name == name:
                return preset
        return None

    @classmethod
    def builtin(cls) -> PresetRegistry:
        return cls(BUILTIN_PRESETS)


BUILTIN_PRESETS: tuple[PackagePreset, ...] = (
    PackagePreset(
        name="Microsoft Teams Custom Backgrounds",
        description=(
            "Deploy custom branded backgrounds for the new Microsoft Teams application"
        ),
        category=PresetCategory.ENTERPRISE,
        settings={
            "identifier": "com.company.teams.backgrounds",
            "version": "1.0.0",
            # Per-user location; expand ~ before validating.
            "install_location": (
                "~/Library/Containers/com.microsoft.teams2/Data/Library/"
                "Application Support/Microsoft/MSTeams/Backgrounds/Uploads"
            ),
            "include_postinstall": True,
        },
        hint=(
            "Package your company's branded backgrounds for Microsoft Teams. "
            "The postinstall script processes images and generates thumbnails."
        ),
        details=PresetDetails(
            requirements=(
                "Microsoft Teams (New) must be installed",
                "Images should be high quality for best results",
                "Recommended resolution: 1920x1080 or higher",
            ),
            supported_formats=(
                "PNG (recommended)",
                "JPG/JPEG (will be converted to PNG)",
                "ZIP archives containing multiple images",
            ),
            notes=(
                "Teams automatically generates thumbnails (186px height)",
                "Each background gets a unique GUID",
                "Backgrounds appear in Teams Settings > Backgrounds & Effects",
            ),
        ),
    ),
)
