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
brewpkg - macOS installer package builder.

brewpkg turns a dropped input (disk image, zip archive, application bundle,
directory or bare executable) into a macOS installer package. The actual
pkgbuild/productbuild work is done by an external packaging engine; brewpkg
classifies the input, builds and validates the engine invocation, runs it,
estimates progress from its output and cleans up after it.

Key Features
------------
  - Input classification with bundle metadata and filename version detection
  - Validated build configuration with a fixed engine argument order
  - Cancellable builds with bounded logs and guaranteed temp file cleanup
  - Installer signing identity discovery from the keychain
  - YAML configuration files layered over organization defaults
  - Built-in presets for common enterprise deployments

Quick Start
-----------
Describe an input:

    $ brewpkg classify ~/Downloads/Acme-2.1.0.dmg

Build a package:

    $ brewpkg build ~/Downloads/Acme-2.1.0.dmg -o Acme.pkg

For full CLI documentation:

    $ brewpkg --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
classifier : module
    Input classification (FileClassifier).
identities : module
    Signing identity discovery.
validation : module
    Configuration file validation.
config : package
    BuildConfiguration, YAML loading and presets.
build : package
    BuildOrchestrator, sessions and progress estimation.
versioning : package
    Version extraction from file names.

Public API
----------
    from brewpkg.build import BuildOrchestrator
    from brewpkg.classifier import classify
    from brewpkg.config import BuildConfiguration, load_build_config
    from brewpkg.identities import IdentityDiscovery

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "brewpkg - macOS installer package builder"

# Re-export commonly used functions for convenience
from brewpkg.build import BuildOrchestrator, BuildState
from brewpkg.classifier import InputDescriptor, InputType, classify
from brewpkg.config import BuildConfiguration, PackageMode, load_build_config
from brewpkg.identities import IdentityDiscovery, SigningIdentity, list_identities
from brewpkg.results import BuildResult, ValidationResult
from brewpkg.validation import validate_config_file

__all__ = [
    "__version__",
    "BuildOrchestrator",
    "BuildState",
    "BuildResult",
    "ValidationResult",
    "BuildConfiguration",
    "PackageMode",
    "load_build_config",
    "classify",
    "InputDescriptor",
    "InputType",
    "IdentityDiscovery",
    "SigningIdentity",
    "list_identities",
    "validate_config_file",
]
