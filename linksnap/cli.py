"""Command-line interface for linksnap.

Commands:
- run: Take one snapshot of a source tree
- list: List committed snapshots in a destination
- init: Create a config file
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from linksnap import __version__
from linksnap.config import (
    Configuration,
    ConfigurationError,
    LoggingConfig,
    PolicyConfig,
    ValidationError,
    create_default_config,
    format_config,
    parse_config,
    DEFAULT_CONFIG_PATH,
)
from linksnap.engine import BackupResult, run_backup
from linksnap.errors import (
    DestinationUnavailable,
    NoBaselineFound,
    SourceUnavailable,
)
from linksnap.locator import list_snapshots
from linksnap.logger import LoggingError, setup_logging


EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_GENERAL_ERROR = 1
EXIT_DESTINATION_ERROR = 3
EXIT_SNAPSHOT_ERROR = 4
EXIT_NO_BASELINE = 5


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog='linksnap',
        description='Timestamped directory snapshots with hard-link deduplication'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to config file (default: ~/.config/linksnap/config.toml)',
        metavar='PATH'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser(
        'run',
        help='Take a snapshot now'
    )
    run_parser.add_argument(
        'source',
        nargs='?',
        type=Path,
        help='Directory to back up (default: from config)'
    )
    run_parser.add_argument(
        'destination',
        nargs='?',
        type=Path,
        help='Folder holding the snapshots (default: from config)'
    )
    run_parser.add_argument(
        '--fail-if-no-baseline',
        action='store_true',
        help='Fail when there is no previous snapshot to link against'
    )
    run_parser.add_argument(
        '--no-hardlinks',
        action='store_true',
        help='Copy every file instead of linking unchanged ones'
    )
    run_parser.add_argument(
        '--exclude',
        action='append',
        type=Path,
        default=[],
        metavar='PATH',
        help='Path to leave out of the snapshot (repeatable)'
    )
    run_parser.add_argument(
        '--log-file',
        type=Path,
        metavar='PATH',
        help='Also write the log to this file'
    )
    run_parser.add_argument(
        '--remove-stale',
        action='store_true',
        help='Delete in-progress folders left by interrupted runs'
    )

    list_parser = subparsers.add_parser(
        'list',
        help='List snapshots'
    )
    list_parser.add_argument(
        'destination',
        nargs='?',
        type=Path,
        help='Folder holding the snapshots (default: from config)'
    )
    list_parser.add_argument(
        '--json',
        action='store_true',
        help='Output as JSON'
    )

    init_parser = subparsers.add_parser(
        'init',
        help='Create a config file'
    )
    init_parser.add_argument(
        'source',
        nargs='?',
        type=Path,
        help='Directory to back up'
    )
    init_parser.add_argument(
        'destination',
        nargs='?',
        type=Path,
        help='Folder holding the snapshots'
    )
    init_parser.add_argument(
        '--force',
        action='store_true',
        help='Overwrite an existing config file'
    )

    return parser


def load_config(config_path: Optional[Path], verbose: bool = False) -> Optional[Configuration]:
    """
    Load configuration from file.

    Returns None and prints error on failure.
    """
    try:
        config = parse_config(config_path)
        if verbose:
            print(f"Loaded config from: {config_path or DEFAULT_CONFIG_PATH}")
        return config
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return None
    except ValidationError as e:
        print(f"Validation error: {e}", file=sys.stderr)
        return None


def _run_config(args: argparse.Namespace) -> Optional[Configuration]:
    """Merge positional arguments and flags over the config file."""
    if args.source is not None and args.destination is not None:
        config = Configuration(source=args.source, destination=args.destination)
        if args.config is not None:
            file_config = load_config(args.config, args.verbose)
            if file_config is None:
                return None
            config.policy = file_config.policy
            config.logging = file_config.logging
    elif args.source is not None:
        print("Both SOURCE and DESTINATION are required", file=sys.stderr)
        return None
    else:
        config = load_config(args.config, args.verbose)
        if config is None:
            return None

    policy = config.policy
    config.policy = PolicyConfig(
        fail_if_no_baseline=policy.fail_if_no_baseline or args.fail_if_no_baseline,
        disable_hard_links=policy.disable_hard_links or args.no_hardlinks,
        exclude_paths=list(policy.exclude_paths) + list(args.exclude),
        remove_stale_in_progress=policy.remove_stale_in_progress or args.remove_stale,
    )
    if args.log_file is not None:
        config.logging = LoggingConfig(
            level=config.logging.level,
            log_file=args.log_file,
            log_max_size_mb=config.logging.log_max_size_mb,
            log_backup_count=config.logging.log_backup_count,
        )
    if args.verbose:
        config.logging.level = "DEBUG"
    return config


def _exit_code_for(result: BackupResult) -> int:
    if isinstance(result.error, NoBaselineFound):
        return EXIT_NO_BASELINE
    if isinstance(result.error, (DestinationUnavailable, SourceUnavailable)):
        return EXIT_DESTINATION_ERROR
    return EXIT_SNAPSHOT_ERROR


def cmd_run(args: argparse.Namespace) -> int:
    """Execute the 'run' command - take one snapshot."""
    config = _run_config(args)
    if config is None:
        return EXIT_CONFIG_ERROR

    try:
        setup_logging(config.logging)
    except LoggingError as e:
        print(f"Logging error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    result = run_backup(config.source, config.destination, config.to_policy())

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if not result.success:
        print(f"Backup failed: {result.error_message}", file=sys.stderr)
        return _exit_code_for(result)

    stats = result.statistics
    print(f"Snapshot: {result.snapshot_path}")
    print(f"  Files copied: {stats.files_copied}")
    print(f"  Files linked: {stats.files_linked}")
    print(
        f"  Data copied: {_format_size(stats.bytes_copied)} "
        f"of {_format_size(stats.bytes_considered)}"
    )
    if stats.bytes_considered > 0:
        ratio = 1 - stats.bytes_copied / stats.bytes_considered
        print(f"  Deduplicated: {ratio:.1%}")
    if args.verbose:
        print(f"  Duration: {result.duration_seconds:.2f}s")
    if result.warnings:
        print(f"  Skipped: {len(result.warnings)} entries (see warnings)")
    return EXIT_SUCCESS


def cmd_list(args: argparse.Namespace) -> int:
    """Execute the 'list' command - list snapshots."""
    destination = args.destination
    if destination is None:
        config = load_config(args.config, args.verbose)
        if config is None:
            return EXIT_CONFIG_ERROR
        destination = config.destination

    snapshots = list_snapshots(destination)

    if args.json:
        output = []
        for snap in snapshots:
            output.append({
                "name": snap.path.name,
                "timestamp": snap.timestamp.isoformat(),
                "path": str(snap.path),
                "size_bytes": snap.size_bytes,
                "file_count": snap.file_count,
            })
        print(json.dumps(output, indent=2))
        return EXIT_SUCCESS

    if not snapshots:
        print("No snapshots found.")
        return EXIT_SUCCESS

    print(f"{'Snapshot':<22} {'Size':>12} {'Files':>10}")
    print("-" * 46)
    for snap in snapshots:
        print(f"{snap.path.name:<22} {_format_size(snap.size_bytes):>12} {snap.file_count:>10}")
    print("-" * 46)
    print(f"Total: {len(snapshots)} snapshot(s)")
    return EXIT_SUCCESS


def cmd_init(args: argparse.Namespace) -> int:
    """Execute the 'init' command - write a config file."""
    config_path = args.config or DEFAULT_CONFIG_PATH

    if config_path.exists() and not args.force:
        print(f"Config file already exists: {config_path}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.source is not None and args.destination is not None:
        content = format_config(Configuration(
            source=args.source.expanduser().absolute(),
            destination=args.destination.expanduser().absolute(),
        ))
    else:
        content = create_default_config()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(content)
    except OSError as e:
        print(f"Cannot write config file: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print(f"Created config file: {config_path}")
    return EXIT_SUCCESS


def _format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def main(argv: list = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    try:
        if args.command == 'run':
            return cmd_run(args)
        elif args.command == 'list':
            return cmd_list(args)
        elif args.command == 'init':
            return cmd_init(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return EXIT_GENERAL_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
