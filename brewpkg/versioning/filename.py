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
Filename version extraction for brewpkg.

Vendors usually put the version in the name of the file they ship
(``Tool-1.2.3.zip``, ``App_2.5.dmg``, ``cli-v3.0.1``). When an input carries
no application bundle metadata, the classifier falls back to these rules.

Rules
-----
Rules are tried in order and the first match wins:

1. ``v_prefix``    ``v?X.Y[.Z[.W]]``  (the "v" is optional)
2. ``underscore``  ``_X.Y[.Z]``
3. ``dash``        ``-X.Y[.Z]``

Each rule captures the version in its first group. The rule table is a
plain tuple so a single rule can be exercised on its own with
``rule.match(name)``.

Examples
--------
    >>> version_from_filename("tool-1.2.3.zip").version
    '1.2.3'
    >>> version_from_filename("Installer.dmg") is None
    True
"""

from __future__ import annotations

from dataclasses import dataclass
import re


@dataclass(frozen=True)
class DiscoveredVersion:
    """Container for a discovered version string.

    Attributes:
        version: Raw version string (e.g., "1.2.3").
        source: Where it came from (e.g., "bundle", "filename:dash").
    """

    version: str
    source: str


@dataclass(frozen=True)
class VersionRule:
    name: str
    pattern: re.Pattern[str]

    def match(self, filename: str) -> str | None:
        m = self.pattern.search(filename)
        return m.group(1) if m else None


FILENAME_VERSION_RULES: tuple[VersionRule, ...] = (
    VersionRule("v_prefix", re.compile(r"v?(\d+\.\d+(?:\.\d+)?(?:\.\d+)?)")),
    VersionRule("underscore", re.compile(r"_(\d+\.\d+(?:\.\d+)?)")),
    VersionRule("dash", re.compile(r"-(\d+\.\d+(?:\.\d+)?)")),
)


def version_from_filename(
    filename: str,
    rules: tuple[VersionRule, ...] = FILENAME_VERSION_RULES,
) -> DiscoveredVersion | None:
    """
    Extract a version-looking token from a file name.

    Parameters
    ----------
    filename : str
        Bare file name (not a full path).
    rules : tuple of VersionRule, optional
        Ordered rules to try. Defaults to FILENAME_VERSION_RULES.

    Returns
    -------
    DiscoveredVersion or None
        The first rule's match with source ``filename:<rule name>``, or None
        when no rule matches.
    """
    from brewpkg.logging import get_global_logger

    logger = get_global_logger()

    for rule in rules:
        version = rule.match(filename)
        if version:
            logger.debug("CLASSIFY", f"Version {version} from {filename!r} ({rule.name})")
            return DiscoveredVersion(version=version, source=f"filename:{rule.name}")

    logger.debug("CLASSIFY", f"No version pattern matched {filename!r}")
    return None
