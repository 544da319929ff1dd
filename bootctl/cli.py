"""
bootctl CLI - autoboot control tool.

Pacman-style interface over the plugin bootstrapper.

Usage:
    bootctl -B [-e ENV]          Reconcile and list the active plugins
    bootctl -Q                   List installed packages
    bootctl -Ql                  List installed packages with their plugins
    bootctl --init               Write a default settings file
"""

import argparse
import logging
import sys

import structlog

from autoboot.config import DEFAULT_SETTINGS_FILE
from autoboot.config.schema import ValidationError
from autoboot.config.toml_handler import TOMLError
from autoboot.plugin.engine import ReconciliationError
from autoboot.plugin.lifecycle import LifecycleError
from autoboot.plugin.manifest import ManifestError
from autoboot.plugin.scanner import ScannerError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="bootctl",
        description="autoboot control tool - plugin bootstrapper",
        add_help=False,
    )

    # Operation flags (mutually exclusive)
    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-B", "--boot", action="store_true", help="Reconcile and list active plugins")
    ops.add_argument("-Q", "--query", action="store_true", help="Query installed packages")
    ops.add_argument("--init", action="store_true", help="Write a default settings file")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")

    # Query sub-flags
    parser.add_argument("-l", "--list", action="store_true", help="List plugins (-Ql)")

    # Common options
    parser.add_argument(
        "-c", "--config", default=str(DEFAULT_SETTINGS_FILE), help="Settings file"
    )
    parser.add_argument("-e", "--env", default=None, help="Environment (overrides settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    return parser


def print_help():
    """Print help message."""
    help_text = """
bootctl - autoboot control tool

Usage:
    bootctl -B [-e ENV]          Reconcile and list the active plugins
    bootctl -Q                   List installed packages
    bootctl -Ql                  List installed packages with their plugins
    bootctl --init               Write a default settings file

Options:
    -c, --config FILE            Settings file (default: autoboot.toml)
    -e, --env ENV                Environment, overrides AUTOBOOT_ENV and settings
    -v, --verbose                Verbose output
    -h, --help                   Show this help
"""
    print(help_text.strip())


def configure_logging(verbose: bool) -> None:
    """Route structlog events to stderr, debug level when verbose."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for bootctl CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        # Show help
        if args.help or (not args.boot and not args.query and not args.init):
            print_help()
            return 0

        # Route to appropriate command
        if args.boot:
            # -B: Boot
            from bootctl.commands.boot import boot_command

            return boot_command(args)

        elif args.query:
            # -Q: Query
            from bootctl.commands.query import query_command

            return query_command(args)

        elif args.init:
            from bootctl.commands.init import init_command

            return init_command(args)

    except (
        ManifestError,
        ReconciliationError,
        ScannerError,
        LifecycleError,
        TOMLError,
        ValidationError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
