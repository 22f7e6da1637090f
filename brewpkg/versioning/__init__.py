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
Version extraction utilities for brewpkg.

Modules
-------
filename : module
    Ordered, table-driven extraction of versions from file names.

Public API
----------
DiscoveredVersion : dataclass
    Discovered version string with its source.
VersionRule : dataclass
    One named filename pattern.
FILENAME_VERSION_RULES : tuple
    The default rule table, in priority order.
version_from_filename : function
    Apply the rule table to a file name; first match wins.
"""

from .filename import (
    FILENAME_VERSION_RULES,
    DiscoveredVersion,
    VersionRule,
    version_from_filename,
)

__all__ = [
    "DiscoveredVersion",
    "VersionRule",
    "FILENAME_VERSION_RULES",
    "version_from_filename",
]
