"""Command-line interface for snapper.

    snapper [-h] [--exclude=PATH ...] <source-root> <snapshots-root>

Creates one snapshot of <source-root> under <snapshots-root> and exits 0,
or exits non-zero with a diagnostic on stderr.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from snapper import __version__
from snapper.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    parse_config,
)
from snapper.errors import EXIT_CONFIG_ERROR, EXIT_GENERAL_ERROR
from snapper.logger import LoggingError, setup_logging
from snapper.run import run_snapshot


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog='snapper',
        description='Create a timestamped, hard-linked incremental snapshot of a directory using rsync'
    )
    parser.add_argument(
        'root',
        help='Directory to snapshot'
    )
    parser.add_argument(
        'snapshots',
        help='Directory holding the snapshots and the Latest link'
    )
    parser.add_argument(
        '--exclude',
        action='append',
        default=[],
        metavar='PATH',
        help='Path (relative to root) to exclude; may be repeated'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        metavar='PATH',
        help='TOML configuration file (no file is read unless given)'
    )
    parser.add_argument(
        '--rsync',
        metavar='COMMAND',
        help='Transfer command to run (default: rsync)'
    )
    parser.add_argument(
        '--lock',
        action='store_true',
        default=None,
        help='Hold a lock on the snapshots directory for the whole run'
    )
    parser.add_argument(
        '--verify-latest',
        action='store_true',
        default=None,
        help='Abort if Latest does not point to an existing snapshot'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        type=str.upper,
        help='Log level (default: INFO)'
    )
    parser.add_argument(
        '--log-file',
        type=Path,
        metavar='PATH',
        help='Also log to this file (rotated, gzip-compressed)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output (same as --log-level DEBUG)'
    )
    return parser


def load_config(args: argparse.Namespace) -> Configuration:
    """
    Build the run configuration from an optional file plus CLI overrides.

    Raises:
        ConfigurationError: If the file is missing or malformed
        ValidationError: If a value has the wrong type
    """
    config = parse_config(args.config) if args.config else Configuration()

    if args.rsync:
        config.transfer.command = args.rsync
    if args.lock is not None:
        config.snapshots.lock = args.lock
    if args.verify_latest is not None:
        config.snapshots.verify_latest = args.verify_latest
    if args.log_file is not None:
        config.logging.log_file = args.log_file
    if args.verbose:
        config.logging.level = 'DEBUG'
    elif args.log_level:
        config.logging.level = args.log_level

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"error: configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValidationError as e:
        print(f"error: validation error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        setup_logging(config.logging)
    except LoggingError as e:
        print(f"error: unable to set up logging: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        result = run_snapshot(
            args.root,
            args.snapshots,
            excludes=args.exclude,
            config=config,
        )
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_GENERAL_ERROR

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
