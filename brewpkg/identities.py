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

"""Signing identity discovery for brewpkg.

Lists the installer signing certificates available in the user's keychains
by running ``security find-identity -v`` and parsing its output. Only
package-signing classes are kept:

- Developer ID Installer
- 3rd Party Mac Developer Installer

Discovery is best effort: if the tool is missing, fails, or times out, the
result is an empty list rather than an error.

Example:
    ```python
    from brewpkg.identities import IdentityDiscovery

    discovery = IdentityDiscovery()
    for identity in discovery.refresh():
        print(identity.id, identity.display_name)
    ```

Note:
    ``security`` prints lines such as::

        1) 0123456789ABCDEF0123456789ABCDEF01234567 "Developer ID Installer: Acme Inc (TEAM123)"
             1 valid identities found

    Anything that does not look like an identity line is skipped.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
import re
import subprocess

SECURITY_COMMAND = ("/usr/bin/security", "find-identity", "-v")

INSTALLER_CERTIFICATE_CLASSES = (
    "Developer ID Installer",
    "3rd Party Mac Developer Installer",
)

_IDENTITY_LINE = re.compile(r'^\s*\d+\)\s+([0-9A-Fa-f]{40})\s+"([^"]+)"(?:\s+\(([^)]+)\))?')
_TEAM_SUFFIX = re.compile(r"\s*\(([A-Z0-9]+)\)$")

CommandRunner = Callable[[Sequence[str]], str]


@dataclass(frozen=True)
class SigningIdentity:
    """A code signing certificate usable for installer packages.

    Equality and hashing use the fingerprint only.

    Attributes:
        id: SHA-1 fingerprint (40 hex characters).
        name: Certificate common name without the team suffix.
        team_id: Team identifier from the "(TEAM)" suffix, if present.
        expiry_date: Certificate expiry, when known.
    """

    id: str
    name: str = field(compare=False)
    team_id: str | None = field(default=None, compare=False)
    expiry_date: datetime | None = field(default=None, compare=False)

    @property
    def display_name(self) -> str:
        if self.team_id:
            return f"{self.name} ({self.team_id})"
        return self.name

    @property
    def is_expired(self) -> bool:
        if self.expiry_date is None:
            return False
        expiry = self.expiry_date
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry < datetime.now(timezone.utc)


def parse_identity_line(line: str) -> SigningIdentity | None:
    """Parse one ``security find-identity`` line, or return None."""
    m = _IDENTITY_LINE.match(line)
    if not m:
        return None

    fingerprint, full_name = m.group(1), m.group(2)
    team_id: str | None = None
    team_match = _TEAM_SUFFIX.search(full_name)
    if team_match:
        team_id = team_match.group(1)
        full_name = full_name[: team_match.start()]

    return SigningIdentity(id=fingerprint, name=full_name, team_id=team_id)


def parse_identities(output: str) -> list[SigningIdentity]:
    """Parse every identity line in the tool output, unfiltered."""
    identities = []
    for line in output.splitlines():
        identity = parse_identity_line(line)
        if identity is not None:
            identities.append(identity)
    return identities


def is_installer_identity(identity: SigningIdentity) -> bool:
    return any(cls in identity.name for cls in INSTALLER_CERTIFICATE_CLASSES)


def _run_security(command: Sequence[str]) -> str:
    result = subprocess.run(
        list(command),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=True,
        timeout=30,
    )
    return result.stdout


def list_identities(runner: CommandRunner | None = None) -> list[SigningIdentity]:
    """List package-signing identities from the user's keychains.

    Args:
        runner: Callable taking the command and returning its stdout.
            Default runs the command with subprocess.

    Returns:
        Installer identities in tool order. Empty when the tool cannot be
        run.
    """
    from brewpkg.logging import get_global_logger

    logger = get_global_logger()
    run = runner or _run_security

    logger.verbose("IDENTITY", f"Running: {' '.join(SECURITY_COMMAND)}")
    try:
        output = run(SECURITY_COMMAND)
    except (OSError, ValueError, subprocess.SubprocessError) as err:
        # ValueError covers undecodable output from a custom runner.
        logger.verbose("IDENTITY", f"Identity listing unavailable: {err}")
        return []

    identities = [i for i in parse_identities(output) if is_installer_identity(i)]
    logger.verbose("IDENTITY", f"Found {len(identities)} installer identities")
    return identities


class IdentityDiscovery:
    """Holds the most recently fetched identity list.

    refresh() replaces the whole list in one assignment, so readers see
    either the old list or the new one, never a mix.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self._runner = runner
        self._identities: tuple[SigningIdentity, ...] = ()

    @property
    def identities(self) -> tuple[SigningIdentity, ...]:
        return self._identities

    def refresh(self) -> tuple[SigningIdentity, ...]:
        self._identities = tuple(list_identities(self._runner))
        return self._identities

    def find(self, identity_id: str) -> SigningIdentity | None:
        for identity in self._identities:
            if identity.id == identity_id:
                return identity
        return None
