"""
Pytest configuration and shared fixtures for brewpkg tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
import plistlib
from typing import Any

import pytest
import yaml

from brewpkg.logging import SilentLogger, set_global_logger


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Reset the global logger so CLI tests do not leak verbosity."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    """Directory the orchestrator stages engine copies and scripts into."""
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def sample_config_data() -> dict[str, Any]:
    """
    Provide sample build configuration data.

    Returns a complete package section for testing.
    """
    return {
        "package": {
            "identifier": "com.acme.tool",
            "version": "1.2.0",
            "install_location": "/usr/local/bin",
            "include_postinstall": True,
            "package_mode": "fileDeployment",
        },
    }


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("test.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def fake_engine(tmp_test_dir: Path):
    """
    Factory fixture for a fake packaging engine.

    Writes a POSIX shell script with the given body and makes it executable.
    The body runs with the engine arguments in "$@".

    Usage:
        engine = fake_engine('echo "Copying files"\\nexit 0')
    """

    def _create(body: str, name: str = "brewpkg-engine.sh") -> Path:
        path = tmp_test_dir / "engine" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        path.chmod(0o755)
        return path

    return _create


@pytest.fixture
def make_app_bundle(tmp_test_dir: Path):
    """
    Factory fixture for a minimal application bundle.

    Usage:
        app = make_app_bundle("My App", short_version="2.1.0")
    """

    def _create(
        name: str,
        parent: Path | None = None,
        short_version: str | None = None,
        bundle_version: str | None = None,
        icon_file: str | None = None,
        icon_bytes: bytes = b"icns",
    ) -> Path:
        bundle = (parent or tmp_test_dir) / f"{name}.app"
        contents = bundle / "Contents"
        (contents / "MacOS").mkdir(parents=True, exist_ok=True)
        (contents / "MacOS" / name).write_bytes(b"\xcf\xfa\xed\xfe")

        info: dict[str, Any] = {"CFBundleName": name}
        if short_version is not None:
            info["CFBundleShortVersionString"] = short_version
        if bundle_version is not None:
            info["CFBundleVersion"] = bundle_version
        if icon_file is not None:
            info["CFBundleIconFile"] = icon_file
            resources = contents / "Resources"
            resources.mkdir(exist_ok=True)
            filename = icon_file if icon_file.endswith(".icns") else f"{icon_file}.icns"
            (resources / filename).write_bytes(icon_bytes)

        with (contents / "Info.plist").open("wb") as f:
            plistlib.dump(info, f)
        return bundle

    return _create
