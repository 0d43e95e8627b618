from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
import sys

from rbak.config import load_config
from rbak.models import BackupFailure, BackupKind
from rbak.run_service import EXIT_INVALID_CONFIG, EXIT_RUNTIME_ERROR, EXIT_SUCCESS, run_backup


VERSION = "0.1.0"

SYMLINK_POLICY = (
    "Symlinks: the path you name is followed, so backing up a link backs up what it "
    "points at. Symlinks inside a directory tree are skipped with a warning unless "
    "--follow-symlinks is given; a followed link that loops back to a directory being "
    "copied aborts the backup. If a directory backup fails midway, the entries copied "
    "so far are left in place and the error says the backup is partial."
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rbak",
        description="Simple file/directory backup tool (.bak files, _bak directories)",
        epilog=SYMLINK_POLICY,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="YAML or JSON settings file")
    common.add_argument(
        "--overwrite",
        action="store_true",
        default=None,
        help="Replace an existing backup instead of failing",
    )
    common.add_argument("--dry-run", action="store_true", help="Report what would be copied")
    common.add_argument("-v", "--verbose", action="store_true", help="Log every copied entry")
    common.add_argument("-q", "--quiet", action="store_true", help="Only log errors")

    subparsers = parser.add_subparsers(dest="command", required=True)

    file_parser = subparsers.add_parser(
        "file",
        parents=[common],
        help="Backup a single file (creates file.bak)",
        epilog=SYMLINK_POLICY,
    )
    file_parser.add_argument("path", help="Path to file to backup")

    dir_parser = subparsers.add_parser(
        "dir",
        parents=[common],
        help="Backup a directory recursively (creates dir_bak)",
        epilog=SYMLINK_POLICY,
    )
    dir_parser.add_argument("path", help="Path to directory to backup")
    dir_parser.add_argument(
        "--follow-symlinks",
        action="store_true",
        default=None,
        help="Copy what symlinks inside the tree point at instead of skipping them",
    )
    dir_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Gitignore-style pattern to leave out of the backup (repeatable)",
    )

    return parser


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def cmd_backup(args: argparse.Namespace, kind: BackupKind) -> int:
    try:
        config = load_config(args.config)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    if args.overwrite is not None:
        config = replace(config, overwrite=args.overwrite)
    if getattr(args, "follow_symlinks", None) is not None:
        config = replace(config, follow_symlinks=args.follow_symlinks)
    if getattr(args, "exclude", None):
        config = replace(config, excludes=[*config.excludes, *args.exclude])

    label = "file" if kind is BackupKind.FILE else "directory"
    print(f"Backing up {label}: {args.path}")

    exit_code, outcome = run_backup(args.path, kind, config, dry_run=args.dry_run)
    if isinstance(outcome, BackupFailure):
        print(f"Error: {outcome.message}", file=sys.stderr)
        return exit_code

    for warning in outcome.stats.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    print(outcome.message)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose, args.quiet)

    if args.command == "file":
        return cmd_backup(args, BackupKind.FILE)
    if args.command == "dir":
        return cmd_backup(args, BackupKind.DIRECTORY)

    parser.print_help()
    return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
