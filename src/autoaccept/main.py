"""
main.py — autoaccept Entry Point

Usage:
    autoaccept status
    autoaccept on --force
    autoaccept test "git push origin" "Push to origin?"
    autoaccept config --validate --config path/to/config.yaml
    autoaccept --log-level DEBUG hook < payload.json
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv


def _find_env_file() -> Path | None:
    """Walk up from CWD looking for a .env file."""
    cwd = Path.cwd()
    for d in [cwd, *cwd.parents]:
        candidate = d / ".env"
        if candidate.is_file():
            return candidate
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoaccept",
        description="Auto-accept rule engine for agent confirmation prompts",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $AUTOACCEPT_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured log level",
    )
    sub = parser.add_subparsers(dest="command")

    on = sub.add_parser("on", help="Enable auto-accept mode")
    on.add_argument("-f", "--force", action="store_true", help="Enable without confirmation")

    sub.add_parser("off", help="Disable auto-accept mode")
    sub.add_parser("status", help="Show current auto-accept status")

    config = sub.add_parser("config", help="Manage configuration")
    group = config.add_mutually_exclusive_group()
    group.add_argument("-s", "--show", action="store_true", help="Show current configuration")
    group.add_argument("-e", "--edit", action="store_true", help="Edit configuration interactively")
    group.add_argument("-r", "--reset", action="store_true", help="Reset to default configuration")
    group.add_argument("-v", "--validate", action="store_true", help="Check every configured pattern")

    logs = sub.add_parser("logs", help="View audit logs")
    logs.add_argument("-n", "--lines", type=int, default=50, help="Number of log entries to show")
    logs.add_argument("-c", "--clear", action="store_true", help="Clear audit logs")

    test = sub.add_parser("test", help="Test if an operation would be auto-accepted")
    test.add_argument("operation", help="Operation to test")
    test.add_argument("message", help="Confirmation message to test")

    pattern = sub.add_parser("pattern", help="Validate or try out a pattern")
    pattern_sub = pattern.add_subparsers(dest="pattern_command", required=True)
    validate = pattern_sub.add_parser("validate", help="Check that a pattern compiles")
    validate.add_argument("pattern")
    try_it = pattern_sub.add_parser("test", help="Check a pattern against sample text")
    try_it.add_argument("pattern")
    try_it.add_argument("text")

    sub.add_parser("hook", help="Answer a PreToolUse hook payload from stdin")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 2 (after printing a clear message) if:
      - the config file has invalid values (Pydantic ValidationError)
      - validate_all() finds problems, except for the `config` command,
        which must stay usable to repair a broken configuration
    """
    import yaml
    from pydantic import ValidationError

    from autoaccept.config.settings import ConfigError, load_settings
    from autoaccept.interfaces.cli import EXIT_CONFIG
    from autoaccept.observability.logger import get_logger, setup_logging

    try:
        settings = load_settings(args.config)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {'.'.join(str(p) for p in e['loc']) or '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\n✗  Config validation failed:\n\n{problems}\n\n"
            f"    Fix your config file or environment and retry.\n",
            file=sys.stderr,
        )
        sys.exit(EXIT_CONFIG)
    except (ConfigError, OSError, ValueError, yaml.YAMLError) as exc:
        print(f"\n✗  Failed to load config: {type(exc).__name__}: {exc}\n", file=sys.stderr)
        sys.exit(EXIT_CONFIG)

    if args.command != "config":
        try:
            settings.validate_all()
        except ConfigError as exc:
            print(str(exc), file=sys.stderr)
            sys.exit(EXIT_CONFIG)

    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output,
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    log = get_logger("autoaccept.main")
    return settings, log


def main(argv: Optional[Sequence[str]] = None) -> int:
    env_path = _find_env_file()
    if env_path:
        load_dotenv(dotenv_path=env_path)

    args = parse_args(argv)
    if args.command is None:
        build_parser().print_help()
        return 1

    settings, log = bootstrap(args)
    log.debug("autoaccept.starting", command=args.command)

    from autoaccept.interfaces.cli import run_command
    return run_command(args, settings)


if __name__ == "__main__":
    sys.exit(main())
