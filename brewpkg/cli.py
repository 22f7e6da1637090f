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

"""Command-line interface for brewpkg.

This module provides the main CLI entry point for the brewpkg tool, offering
commands for building installer packages and inspecting their inputs.

Commands:

    build: Build a .pkg from a dropped input
    validate: Validate a build configuration file
    classify: Describe an input (type, size, detected version)
    identities: List installer signing identities
    presets: List or search built-in configuration presets

Example:
    Build a package, seeding identifier and version from the input:
        ```bash
        $ brewpkg build "Acme-2.1.0.dmg" -o Acme.pkg
        ```

    Build from a configuration file, signed:
        ```bash
        $ brewpkg build tool.zip -o tool.pkg -c packages/tool.yaml \\
            -s "Developer ID Installer: Acme Inc (TEAM123)"
        ```

    Classify an input as JSON:
        ```bash
        $ brewpkg classify "/Applications/Acme.app" --json
        ```

Exit Codes:

- 0: Success
- N: The packaging engine's own exit code when it fails
- 1: Any other error (configuration, validation, missing engine, cancel)

Note:
    The CLI uses argparse for command parsing. Each command has its own
    handler function (cmd_<command>). Ctrl-C during a build cancels it and
    waits for the engine to stop. Verbose mode relays engine output and
    shows full tracebacks on errors. Debug mode implies verbose mode.
"""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
import json
from pathlib import Path
import sys
from typing import Any

from brewpkg.build import BuildOrchestrator, FailureKind
from brewpkg.classifier import InputDescriptor, classify
from brewpkg.config import (
    BuildConfiguration,
    PackageMode,
    PresetDetails,
    PresetRegistry,
    load_build_config,
)
from brewpkg.exceptions import BrewPkgError, ConfigError, ValidationError
from brewpkg.identities import IdentityDiscovery
from brewpkg.logging import DefaultLogger, Logger, get_logger, set_global_logger
from brewpkg.results import BuildResult
from brewpkg.validation import validate_config_file


def _configure_logger(args: argparse.Namespace) -> Logger:
    """Install the global logger for a command.

    With --json, log lines go to stderr so stdout stays parseable.
    """
    verbose = getattr(args, "verbose", False)
    debug = getattr(args, "debug", False)
    if getattr(args, "json", False):
        logger: Logger = DefaultLogger(verbose=verbose, debug=debug, stream=sys.stderr)
    else:
        logger = get_logger(verbose=verbose, debug=debug)
    set_global_logger(logger)
    return logger


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _print_error(err: Exception, args: argparse.Namespace) -> None:
    print(f"Error: {err}")
    if getattr(args, "verbose", False) or getattr(args, "debug", False):
        import traceback

        traceback.print_exc()


def _descriptor_dict(descriptor: InputDescriptor) -> dict[str, Any]:
    return {
        "path": str(descriptor.path),
        "type": descriptor.type.value,
        "type_description": descriptor.type.description,
        "size": descriptor.size,
        "formatted_size": descriptor.formatted_size,
        "app_name": descriptor.app_name,
        "binary_name": descriptor.binary_name,
        "version": descriptor.version,
        "version_source": descriptor.version_source,
        "has_icon": descriptor.icon is not None,
        "suggested_identifier": descriptor.suggested_identifier,
    }


def _result_dict(result: BuildResult) -> dict[str, Any]:
    failure = result.failure
    return {
        "state": result.state.value,
        "progress": result.progress,
        "input_path": str(result.input_path) if result.input_path else None,
        "output_path": str(result.output_path) if result.output_path else None,
        "arguments": list(result.arguments),
        "failure": (
            {
                "kind": failure.kind.value,
                "message": failure.message,
                "exit_code": failure.exit_code,
                "stderr_tail": failure.stderr_tail,
            }
            if failure
            else None
        ),
    }


def _details_dict(details: PresetDetails | None) -> dict[str, list[str]] | None:
    if details is None:
        return None
    return {
        "requirements": list(details.requirements),
        "supported_formats": list(details.supported_formats),
        "notes": list(details.notes),
    }


def _build_exit_code(result: BuildResult) -> int:
    if result.succeeded:
        return 0
    failure = result.failure
    if failure is not None and failure.kind is FailureKind.PROCESS_EXIT:
        if failure.exit_code and failure.exit_code > 0:
            return failure.exit_code
    return 1


def _apply_build_flags(
    config: BuildConfiguration, args: argparse.Namespace
) -> BuildConfiguration:
    """Apply command-line overrides on top of the configuration."""
    if args.identifier:
        config.identifier = args.identifier
    if args.version_string:
        config.version = args.version_string
    if args.install_location:
        config.install_location = args.install_location
    if args.signing_identity:
        config.signing_identity = args.signing_identity
    if args.preinstall:
        config.include_preinstall = True
    if args.postinstall:
        config.include_postinstall = True
    if args.preserve_permissions:
        config.preserve_permissions = True
    if args.file_deployment_mode:
        config.package_mode = PackageMode.FILE_DEPLOYMENT
    if args.create_intermediate_folders:
        config.create_intermediate_folders = True
    return config


def cmd_build(args: argparse.Namespace) -> int:
    """Handler for 'brewpkg build' command.

    Classifies the input to seed identifier and version, layers the preset,
    configuration file and command-line flags, then runs the packaging
    engine and waits for it to finish. A ``~`` install location is expanded
    to the current user's home before the configuration is validated.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, the engine's exit code when it fails,
        1 for anything else).
    """
    logger = _configure_logger(args)

    input_path = Path(args.input).resolve()
    output_path = Path(args.output).resolve()

    if not input_path.exists():
        print(f"Error: Input not found: {input_path}")
        return 1

    engine_path = Path(args.engine) if args.engine else None
    keep_version = False
    try:
        if args.preset:
            preset = PresetRegistry.builtin().get(args.preset)
            if preset is None:
                print(f"Error: Unknown preset: {args.preset}")
                return 1
            config = preset.configuration_copy()
            keep_version = "version" in preset.settings
        else:
            config = BuildConfiguration()

        if args.config:
            loaded = load_build_config(Path(args.config))
            config = loaded.configuration
            keep_version = "version" in loaded.package_keys
            if engine_path is None:
                engine_path = loaded.engine_path

        descriptor = classify(input_path)
        config = config.with_input(descriptor, keep_version=keep_version)
        config = _apply_build_flags(config, args).with_home_expanded()
    except (ConfigError, OSError) as err:
        _print_error(err, args)
        return 1

    if not args.json:
        print(f"Building package from: {input_path}")
        print(f"Input type: {descriptor.type.description} ({descriptor.formatted_size})")
        print(f"Output: {output_path}")
        print()

    orchestrator = BuildOrchestrator(engine_path=engine_path, logger=logger)
    try:
        orchestrator.start(config, input_path, output_path)
    except ValidationError as err:
        print("Error: Invalid build configuration")
        for message in err.errors:
            print(f"  [X] {message}")
        return 1

    try:
        result = orchestrator.wait()
    except KeyboardInterrupt:
        print()
        print("Cancelling build...")
        orchestrator.cancel()
        result = orchestrator.wait()

    if args.json:
        _print_json(_result_dict(result))
        return _build_exit_code(result)

    print("=" * 70)
    print("BUILD RESULTS")
    print("=" * 70)
    print(f"Identifier:      {config.identifier}")
    print(f"Version:         {config.version}")
    print(f"Install To:      {config.install_location}")
    print(f"Package Mode:    {config.package_mode.display_name}")
    print(f"Signed With:     {config.signing_identity or '(unsigned)'}")
    print(f"Package:         {result.output_path}")
    print(f"Status:          {result.state.value}")
    if result.failure is not None:
        print(f"Failure:         {result.failure.message.splitlines()[0]}")
        if result.failure.stderr_tail:
            print()
            print("Engine stderr (tail):")
            for line in result.failure.stderr_tail.splitlines():
                print(f"  {line}")
    print("=" * 70)
    print()

    if result.succeeded:
        print("[SUCCESS] Package built successfully!")
    elif result.failure is not None and result.failure.kind is FailureKind.CANCELLED:
        print("[CANCELLED] Build was cancelled.")
    else:
        print("[FAILED] Package build failed.")
    return _build_exit_code(result)


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'brewpkg validate' command.

    Validates a configuration file without locating the engine or touching
    any package input.

    Args:
        args: Parsed command-line arguments containing the config path.

    Returns:
        Exit code (0 for valid configuration, 1 for invalid).
    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    config_path = Path(args.config).resolve()

    print(f"Validating configuration: {config_path}")
    print()

    result = validate_config_file(config_path)

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"Configuration: {result.config_path}")
    print(f"Status:        {result.status.upper()}")
    print()

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  [WARNING] {warning}")
        print()

    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  [X] {error}")
        print()

    print("=" * 70)

    if result.status == "valid":
        print()
        print("[SUCCESS] Configuration is valid!")
        return 0
    else:
        print()
        print(
            f"[FAILED] Configuration validation failed with {len(result.errors)} error(s)."
        )
        return 1


def cmd_classify(args: argparse.Namespace) -> int:
    """Handler for 'brewpkg classify' command.

    Returns:
        Exit code (0 for success, 1 if the path cannot be classified).
    """
    _configure_logger(args)

    try:
        descriptor = classify(Path(args.path).resolve())
    except (OSError, BrewPkgError) as err:
        _print_error(err, args)
        return 1

    if args.json:
        _print_json(_descriptor_dict(descriptor))
        return 0

    print("=" * 70)
    print("INPUT")
    print("=" * 70)
    print(f"Path:            {descriptor.path}")
    print(f"Type:            {descriptor.type.description}")
    print(f"Size:            {descriptor.formatted_size}")
    if descriptor.app_name:
        print(f"Application:     {descriptor.app_name}")
    if descriptor.binary_name:
        print(f"Executable:      {descriptor.binary_name}")
    print(f"Version:         {descriptor.version or '(not detected)'}")
    if descriptor.version_source:
        print(f"Version Source:  {descriptor.version_source}")
    print(f"Suggested ID:    {descriptor.suggested_identifier}")
    print("=" * 70)
    return 0


def cmd_identities(args: argparse.Namespace) -> int:
    """Handler for 'brewpkg identities' command.

    Returns:
        Exit code 0. An unavailable keychain tool yields an empty list.
    """
    _configure_logger(args)

    identities = IdentityDiscovery().refresh()

    if args.json:
        _print_json(
            [
                {
                    "id": identity.id,
                    "name": identity.name,
                    "team_id": identity.team_id,
                    "display_name": identity.display_name,
                }
                for identity in identities
            ]
        )
        return 0

    if not identities:
        print("No installer signing identities found.")
        return 0

    print(f"Installer signing identities ({len(identities)}):")
    for identity in identities:
        print(f"  {identity.id}  {identity.display_name}")
    return 0


def cmd_presets(args: argparse.Namespace) -> int:
    """Handler for 'brewpkg presets' command.

    Returns:
        Exit code (0 when at least one preset matched, 1 otherwise).
    """
    registry = PresetRegistry.builtin()
    presets = registry.search(args.query) if args.query else registry.presets()

    if args.json:
        _print_json(
            [
                {
                    "name": preset.name,
                    "description": preset.description,
                    "category": preset.category.value,
                    "hint": preset.hint,
                    "configuration": preset.configuration.to_dict(),
                    "details": _details_dict(preset.details),
                }
                for preset in presets
            ]
        )
        return 0 if presets else 1

    if not presets:
        print(f"No presets match: {args.query}")
        return 1

    for preset in presets:
        configuration = preset.configuration
        print(f"{preset.name} [{preset.category.value}]")
        print(f"  {preset.description}")
        print(f"  Identifier:  {configuration.identifier}")
        print(f"  Install To:  {configuration.install_location}")
        if args.verbose:
            if preset.hint:
                print(f"  {preset.hint}")
            details = preset.details
            if details is not None:
                for title, lines in (
                    ("Requirements", details.requirements),
                    ("Supported formats", details.supported_formats),
                    ("Notes", details.notes),
                ):
                    if lines:
                        print(f"  {title}:")
                        for line in lines:
                            print(f"    - {line}")
        print()
    return 0


def _package_version() -> str:
    try:
        return version("brewpkg")
    except PackageNotFoundError:
        from brewpkg import __version__

        return __version__


def _add_output_flags(parser: argparse.ArgumentParser, debug: bool = True) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    if debug:
        parser.add_argument(
            "-d",
            "--debug",
            action="store_true",
            help="Show detailed debugging output (implies --verbose)",
        )


def build_parser() -> argparse.ArgumentParser:
    """Create the brewpkg argument parser."""
    parser = argparse.ArgumentParser(
        prog="brewpkg",
        description="brewpkg - Build macOS installer packages from apps, archives and files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"brewpkg {_package_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'build' command
    parser_build = subparsers.add_parser(
        "build",
        help="Build an installer package from an input",
        description="Run the packaging engine on a disk image, archive, app, directory or executable.",
    )
    parser_build.add_argument("input", help="Input to package")
    parser_build.add_argument(
        "-o", "--output", required=True, help="Destination .pkg path"
    )
    source_group = parser_build.add_mutually_exclusive_group()
    source_group.add_argument(
        "-c", "--config", default=None, help="Build configuration YAML file"
    )
    source_group.add_argument(
        "--preset", default=None, help="Start from a built-in preset (by name)"
    )
    parser_build.add_argument(
        "-i", "--identifier", default=None, help="Package identifier"
    )
    parser_build.add_argument(
        "-V",
        "--package-version",
        dest="version_string",
        default=None,
        help="Package version",
    )
    parser_build.add_argument(
        "-l", "--install-location", default=None, help="Install location"
    )
    parser_build.add_argument(
        "-s", "--signing-identity", default=None, help="Installer signing identity"
    )
    parser_build.add_argument(
        "--preinstall", action="store_true", help="Include a preinstall script"
    )
    parser_build.add_argument(
        "--postinstall", action="store_true", help="Include a postinstall script"
    )
    parser_build.add_argument(
        "--preserve-permissions",
        action="store_true",
        help="Keep payload file permissions as-is",
    )
    parser_build.add_argument(
        "--file-deployment-mode",
        action="store_true",
        help="Deploy files to the install location instead of installing an app",
    )
    parser_build.add_argument(
        "--create-intermediate-folders",
        action="store_true",
        help="Create missing parent folders (file deployment mode)",
    )
    parser_build.add_argument(
        "--engine",
        default=None,
        help="Packaging engine path (default: $BREWPKG_ENGINE or PATH lookup)",
    )
    parser_build.add_argument(
        "--json", action="store_true", help="Print the build result as JSON"
    )
    _add_output_flags(parser_build)
    parser_build.set_defaults(func=cmd_build)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Validate a build configuration file",
        description="Check a configuration YAML for syntax errors and invalid values without building.",
    )
    parser_validate.add_argument("config", help="Path to the configuration YAML file")
    _add_output_flags(parser_validate, debug=False)
    parser_validate.set_defaults(func=cmd_validate)

    # 'classify' command
    parser_classify = subparsers.add_parser(
        "classify",
        help="Describe a package input",
        description="Report the input type, size and detected version of a path.",
    )
    parser_classify.add_argument("path", help="Path to classify")
    parser_classify.add_argument("--json", action="store_true", help="Print as JSON")
    _add_output_flags(parser_classify)
    parser_classify.set_defaults(func=cmd_classify)

    # 'identities' command
    parser_identities = subparsers.add_parser(
        "identities",
        help="List installer signing identities",
        description="List valid installer signing identities from the keychain.",
    )
    parser_identities.add_argument("--json", action="store_true", help="Print as JSON")
    _add_output_flags(parser_identities)
    parser_identities.set_defaults(func=cmd_identities)

    # 'presets' command
    parser_presets = subparsers.add_parser(
        "presets",
        help="List or search configuration presets",
        description="List the built-in presets, or those matching a query.",
    )
    parser_presets.add_argument("query", nargs="?", default=None, help="Search text")
    parser_presets.add_argument("--json", action="store_true", help="Print as JSON")
    _add_output_flags(parser_presets, debug=False)
    parser_presets.set_defaults(func=cmd_presets)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the brewpkg CLI.

    This function is registered as the 'brewpkg' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
