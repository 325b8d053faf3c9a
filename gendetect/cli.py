#!/usr/bin/env python3
"""Command-line interface for gendetect.

This module provides the CLI for classifying and watching workspaces:
- Argument parsing and validation
- Configuration loading (standard locations plus --config)
- One-shot commands: check, list, sync-readonly, validate
- Hand-off to the long-running watch controller

Example:
    >>> from gendetect.cli import parse_arguments
    >>> args = parse_arguments(['list', '/work/project'])
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from gendetect.core.constants import GENDETECT_VERSION, ConfigKey
from gendetect.core.identity import FileIdentity, WorkspaceRoots
from gendetect.core.validators import ValidationError, validate_detection_config
from gendetect.detection.engine import ClassificationEngine
from gendetect.infrastructure.config_manager import ConfigError, ConfigManager, ConfigSource
from gendetect.infrastructure.logger import Logger, configure_logging, get_logger
from gendetect.infrastructure.readonly_sync import (
    ReadOnlySettingsWriter,
    SyncError,
    build_readonly_include,
)
from gendetect.rules.ruleset import RuleSet

DESCRIPTION = "gendetect - Generated file detection"

# Settings file written by sync-readonly when --settings is not given
DEFAULT_SETTINGS_PATH = os.path.join(".vscode", "settings.json")


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If paths fail validation
    """
    parser = argparse.ArgumentParser(
        prog="gendetect",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Is this file generated?
  gendetect check src/api/client.ts

  # List every generated file in a project
  gendetect list ~/work/project

  # Mark generated files read-only for the editor
  gendetect sync-readonly ~/work/project --settings ~/work/project/.vscode/settings.json

  # Keep the read-only list current while you work
  gendetect watch ~/work/project --settings ~/work/project/.vscode/settings.json

  # Check a configuration file
  gendetect validate --config .gendetect.yaml
        """,
    )

    # Version
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {GENDETECT_VERSION}",
    )

    # Configuration file
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write logs to a rotating file",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    check = subparsers.add_parser("check", help="Classify individual files")
    check.add_argument("paths", metavar="PATH", nargs="+", help="Files to classify")
    check.add_argument(
        "--root",
        metavar="DIR",
        default=os.getcwd(),
        help="Project root for exclusions and attributes (default: current directory)",
    )

    list_cmd = subparsers.add_parser("list", help="List generated files under a root")
    list_cmd.add_argument("root", metavar="ROOT", help="Project root to walk")

    sync = subparsers.add_parser("sync-readonly", help="Write the read-only allow-list once")
    sync.add_argument("root", metavar="ROOT", help="Project root to walk")
    sync.add_argument(
        "--settings",
        metavar="FILE",
        help=f"Settings file to update (default: ROOT/{DEFAULT_SETTINGS_PATH})",
    )

    watch = subparsers.add_parser("watch", help="Keep classifications current until interrupted")
    watch.add_argument("roots", metavar="ROOT", nargs="+", help="Project roots to watch")
    watch.add_argument("--settings", metavar="FILE", help="Settings file to keep in sync")
    watch.add_argument(
        "--no-initial-scan",
        dest="initial_scan",
        action="store_false",
        help="Do not classify every file on startup",
    )

    subparsers.add_parser("validate", help="Strictly validate the detection configuration")

    # Parse arguments
    parsed = parser.parse_args(args)

    # Validate arguments
    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        CLIError: If validation fails
    """
    for root in get_roots(args):
        root_path = Path(root)

        if not root_path.exists():
            raise CLIError(f"Root directory does not exist: {root}")

        if not root_path.is_dir():
            raise CLIError(f"Root is not a directory: {root}")

    # Validate config file (if specified)
    if args.config:
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")


def get_roots(args: argparse.Namespace) -> List[str]:
    """Project roots named on the command line, as absolute paths."""
    if getattr(args, "roots", None):
        return [os.path.abspath(root) for root in args.roots]
    if getattr(args, "root", None):
        return [os.path.abspath(args.root)]
    return []


def build_config_from_args(args: argparse.Namespace) -> Dict:
    """
    Build configuration dictionary from command-line arguments.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration dictionary for the CLI level of ConfigManager
    """
    config: Dict = {}

    logging_config = {}
    if args.debug:
        logging_config["level"] = "DEBUG"
    if args.log_file:
        logging_config["file"] = args.log_file
    if logging_config:
        config[ConfigKey.LOGGING] = logging_config

    return config


def load_configuration(args: argparse.Namespace) -> ConfigManager:
    """
    Load configuration from the standard locations, --config and arguments.

    An explicit --config file sits above the user configuration and below
    the project file, in a level of its own.

    Args:
        args: Parsed arguments namespace

    Returns:
        Populated ConfigManager

    Raises:
        CLIError: If the --config file cannot be loaded
    """
    config = ConfigManager()
    config.load_standard_locations(get_roots(args))

    if args.config:
        try:
            config.load_file(args.config, ConfigSource.EXPLICIT_CONFIG)
        except ConfigError as e:
            raise CLIError(f"Failed to load configuration file: {args.config}\n{e.message}")

    config.load_dict(build_config_from_args(args), ConfigSource.CLI_ARGS)
    return config


def setup_logging(args: argparse.Namespace, config: ConfigManager) -> Logger:
    """
    Setup logging based on arguments and configuration.

    Args:
        args: Parsed arguments namespace
        config: Configuration manager

    Returns:
        Configured logger instance
    """
    log_level = "DEBUG" if args.debug else config.get("logging.level", "INFO")
    log_file = args.log_file or config.get("logging.file")

    try:
        configure_logging(log_level, log_file)
    except KeyError:
        raise CLIError(f"Unknown log level: {log_level}")
    except OSError as e:
        raise CLIError(f"Cannot open log file: {log_file}\n{e}")

    return get_logger("gendetect.cli")


def build_engine(config: ConfigManager, roots: List[str]) -> ClassificationEngine:
    """Create an engine for the given roots using the configured rules."""
    rules = RuleSet.from_config(config.section(ConfigKey.NAMESPACE))
    return ClassificationEngine(rules=rules, roots=WorkspaceRoots(roots))


def classify_tree(engine: ClassificationEngine) -> List[str]:
    """Classify every file under the engine's roots.

    Returns:
        Sorted root-relative paths of the generated files
    """
    for identity in engine.roots.iter_files():
        engine.classify(identity)
    return sorted(engine.get_generated_files())


def cmd_check(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Print the verdict and deciding rule for each path."""
    engine = build_engine(config, get_roots(args))

    for path in args.paths:
        result = engine.explain(FileIdentity.from_path(path))
        if result.is_generated:
            print(f"{path}: generated ({result.describe()})")
        else:
            print(f"{path}: source")

    return 0


def cmd_list(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Print every generated file under the root."""
    engine = build_engine(config, get_roots(args))

    generated = classify_tree(engine)
    for path in generated:
        print(path)

    logger.debug("Listed generated files", root=args.root, count=len(generated))
    return 0


def cmd_sync_readonly(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Classify the tree once and write the allow-list."""
    roots = get_roots(args)
    engine = build_engine(config, roots)
    settings = args.settings or os.path.join(roots[0], DEFAULT_SETTINGS_PATH)

    generated = classify_tree(engine)
    try:
        ReadOnlySettingsWriter(settings).write(build_readonly_include(generated))
    except SyncError as e:
        raise CLIError(e.message)

    print(f"{len(generated)} generated file(s) marked read-only in {settings}")
    return 0


def cmd_validate(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Strictly validate the merged detection section."""
    try:
        validate_detection_config(config.section(ConfigKey.NAMESPACE))
    except ValidationError as e:
        print(f"Invalid configuration: {e.message}", file=sys.stderr)
        return 1

    print("Configuration OK")
    return 0


def cmd_watch(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Hand control to the long-running controller."""
    from gendetect.main import run_gendetect

    return run_gendetect(args, config, logger)


COMMANDS = {
    "check": cmd_check,
    "list": cmd_list,
    "sync-readonly": cmd_sync_readonly,
    "validate": cmd_validate,
    "watch": cmd_watch,
}


def print_banner(logger: Logger) -> None:
    """
    Print startup banner with version information.

    Args:
        logger: Logger instance
    """
    logger.info("=" * 60)
    logger.info(f"gendetect v{GENDETECT_VERSION}")
    logger.info(DESCRIPTION)
    logger.info("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Parses arguments, loads configuration, sets up logging and runs the
    selected command.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    try:
        # Parse arguments
        args = parse_arguments(argv)

        # Load configuration
        config = load_configuration(args)

        # Setup logging
        logger = setup_logging(args, config)

        if args.command == "watch":
            print_banner(logger)

        return COMMANDS[args.command](args, config, logger)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
