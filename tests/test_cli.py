"""
Tests for the brewpkg command-line interface.

These are INTEGRATION tests: each one runs main() end to end, and the build
tests drive a fake packaging engine through a real subprocess.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from brewpkg.cli import main

pytestmark = pytest.mark.integration


def run_cli(*argv: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


@pytest.fixture
def source_zip(tmp_test_dir: Path) -> Path:
    path = tmp_test_dir / "tool-1.2.3.zip"
    path.write_bytes(b"PK\x03\x04")
    return path


class TestBuildCommand:
    """Tests for 'brewpkg build'."""

    def test_build_success_json(self, fake_engine, source_zip, tmp_test_dir, capsys):
        """Test a successful build seeded from the input's name."""
        engine = fake_engine('echo "Running pkgbuild"\nexit 0')
        output = tmp_test_dir / "tool.pkg"

        code = run_cli(
            "build", str(source_zip), "-o", str(output), "--engine", str(engine), "--json"
        )

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["state"] == "completed"
        assert data["progress"] == 1.0
        args = data["arguments"]
        assert args[args.index("-i") + 1] == "com.company.tool-1.2.3"
        assert args[args.index("-v") + 1] == "1.2.3"
        assert data["failure"] is None

    def test_build_flags_override(self, fake_engine, source_zip, tmp_test_dir, capsys):
        """Test that command-line flags override seeded values."""
        engine = fake_engine("exit 0")

        code = run_cli(
            "build",
            str(source_zip),
            "-o", str(tmp_test_dir / "tool.pkg"),
            "-i", "com.acme.tool",
            "-V", "9.0",
            "-l", "/usr/local/bin",
            "--postinstall",
            "--file-deployment-mode",
            "--create-intermediate-folders",
            "--engine", str(engine),
            "--json",
        )  # fmt: skip

        args = json.loads(capsys.readouterr().out)["arguments"]
        assert code == 0
        assert args[:6] == ["-i", "com.acme.tool", "-v", "9.0", "-l", "/usr/local/bin"]
        assert "--postinstall" in args
        assert "--postinstall-file" in args
        assert args.index("--file-deployment-mode") < args.index(
            "--create-intermediate-folders"
        )

    def test_build_failure_returns_engine_code(
        self, fake_engine, source_zip, tmp_test_dir, capsys
    ):
        """Test that the engine's exit code becomes the CLI exit code."""
        engine = fake_engine('echo "signing failed" >&2\nexit 4')

        code = run_cli(
            "build", str(source_zip), "-o", str(tmp_test_dir / "t.pkg"), "--engine", str(engine)
        )

        out = capsys.readouterr().out
        assert code == 4
        assert "[FAILED]" in out
        assert "signing failed" in out

    def test_build_from_config_file(
        self, fake_engine, source_zip, tmp_test_dir, create_yaml_file, capsys
    ):
        """Test that the config file supplies identifier and engine path."""
        engine = fake_engine("exit 0")
        config_path = create_yaml_file(
            "tool.yaml",
            {
                "package": {"identifier": "com.acme.fromfile", "version": "7.0"},
                "engine": {"path": str(engine)},
            },
        )

        code = run_cli(
            "build", str(source_zip), "-o", str(tmp_test_dir / "t.pkg"),
            "-c", str(config_path), "--json",
        )  # fmt: skip

        args = json.loads(capsys.readouterr().out)["arguments"]
        assert code == 0
        assert args[1] == "com.acme.fromfile"
        assert args[3] == "7.0"

    def test_build_with_home_relative_preset(
        self, fake_engine, source_zip, tmp_test_dir, capsys, monkeypatch
    ):
        """Test that the Teams preset's ~ location is expanded before building."""
        monkeypatch.setenv("HOME", "/Users/tester")
        engine = fake_engine("exit 0")

        code = run_cli(
            "build", str(source_zip), "-o", str(tmp_test_dir / "t.pkg"),
            "--preset", "Microsoft Teams Custom Backgrounds",
            "--engine", str(engine), "--json",
        )  # fmt: skip

        args = json.loads(capsys.readouterr().out)["arguments"]
        assert code == 0
        assert args[args.index("-l") + 1].startswith("/Users/tester/Library/Containers/")
        assert args[args.index("-v") + 1] == "1.0.0"

    def test_build_keeps_explicit_default_version(
        self, fake_engine, source_zip, tmp_test_dir, create_yaml_file, capsys
    ):
        """Test that a config file's version 1.0 is not replaced by the input's."""
        engine = fake_engine("exit 0")
        config_path = create_yaml_file(
            "tool.yaml", {"package": {"identifier": "com.acme.tool", "version": "1.0"}}
        )

        code = run_cli(
            "build", str(source_zip), "-o", str(tmp_test_dir / "t.pkg"),
            "-c", str(config_path), "--engine", str(engine), "--json",
        )  # fmt: skip

        args = json.loads(capsys.readouterr().out)["arguments"]
        assert code == 0
        assert args[args.index("-v") + 1] == "1.0"

    def test_build_invalid_configuration(self, source_zip, tmp_test_dir, capsys):
        """Test that an invalid install location fails before building."""
        code = run_cli(
            "build", str(source_zip), "-o", str(tmp_test_dir / "t.pkg"), "-l", "relative"
        )

        out = capsys.readouterr().out
        assert code == 1
        assert "install location must be an absolute path" in out

    def test_build_missing_input(self, tmp_test_dir, capsys):
        """Test that a missing input is an error."""
        code = run_cli("build", str(tmp_test_dir / "nope.dmg"), "-o", "x.pkg")

        assert code == 1
        assert "Input not found" in capsys.readouterr().out

    def test_build_unknown_preset(self, source_zip, capsys):
        """Test that an unknown preset name is an error."""
        code = run_cli("build", str(source_zip), "-o", "x.pkg", "--preset", "Nope")

        assert code == 1
        assert "Unknown preset" in capsys.readouterr().out


class TestValidateCommand:
    """Tests for 'brewpkg validate'."""

    def test_valid(self, create_yaml_file, sample_config_data, capsys):
        """Test that a valid file exits 0."""
        path = create_yaml_file("tool.yaml", sample_config_data)

        code = run_cli("validate", str(path))

        assert code == 0
        assert "[SUCCESS]" in capsys.readouterr().out

    def test_invalid(self, create_yaml_file, capsys):
        """Test that an invalid file exits 1 and lists errors."""
        path = create_yaml_file("tool.yaml", {"package": {"version": "1.0"}})

        code = run_cli("validate", str(path))

        out = capsys.readouterr().out
        assert code == 1
        assert "identifier is required" in out


class TestInspectionCommands:
    """Tests for classify, identities and presets."""

    def test_classify_json(self, source_zip, capsys):
        """Test classify output as JSON."""
        code = run_cli("classify", str(source_zip), "--json")

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["type"] == "archive"
        assert data["version"] == "1.2.3"
        assert data["has_icon"] is False

    def test_classify_missing(self, tmp_test_dir, capsys):
        """Test classify on a missing path."""
        assert run_cli("classify", str(tmp_test_dir / "missing")) == 1

    def test_identities_json(self, capsys):
        """Test identities with a mocked keychain listing."""
        output = (
            '  1) AABBCCDDEEFF00112233445566778899AABB0011 '
            '"Developer ID Installer: Acme Inc (TEAM123)"\n'
        )
        with patch("brewpkg.identities._run_security", return_value=output):
            code = run_cli("identities", "--json")

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data[0]["team_id"] == "TEAM123"

    def test_identities_unavailable(self, capsys):
        """Test that a missing security tool prints an empty result."""
        with patch("brewpkg.identities._run_security", side_effect=FileNotFoundError):
            code = run_cli("identities")

        assert code == 0
        assert "No installer signing identities" in capsys.readouterr().out

    def test_presets_search(self, capsys):
        """Test preset search."""
        code = run_cli("presets", "teams")

        assert code == 0
        assert "Microsoft Teams Custom Backgrounds" in capsys.readouterr().out

    def test_presets_verbose_shows_details(self, capsys):
        """Test that --verbose lists preset requirements and notes."""
        code = run_cli("presets", "teams", "--verbose")

        out = capsys.readouterr().out
        assert code == 0
        assert "Requirements:" in out
        assert "Microsoft Teams (New) must be installed" in out
        assert "Supported formats:" in out

    def test_presets_json_includes_details(self, capsys):
        """Test that JSON output carries preset details."""
        code = run_cli("presets", "teams", "--json")

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert "Microsoft Teams (New) must be installed" in data[0]["details"]["requirements"]

    def test_presets_no_match(self, capsys):
        """Test that a search with no results exits 1."""
        assert run_cli("presets", "no-such-preset") == 1
