from __future__ import annotations

from pathlib import Path
import logging

from rbak.config import BackupConfig
from rbak.copier import CopyOptions, copy_file, copy_tree
from rbak.errors import CopyError, RbakError
from rbak.models import BackupFailure, BackupKind, BackupSuccess, CopyOutcome
from rbak.resolver import resolve


EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_PARTIAL_BACKUP = 2
EXIT_INVALID_CONFIG = 3


def _failure_reason(exc: RbakError, destination: Path | None) -> str:
    if isinstance(exc, CopyError) and exc.partial and destination is not None:
        return (
            f"{exc}. Backup is partial: entries copied before the failure "
            f"were left in {destination}"
        )
    return str(exc)


def run_backup(
    source: Path | str,
    kind: BackupKind | None = None,
    config: BackupConfig | None = None,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> tuple[int, CopyOutcome]:
    """Resolve ``source`` and back it up according to ``config``.

    Never raises for filesystem or resolution failures; they come back as a
    BackupFailure together with the exit code the CLI should use.
    """
    log = logger or logging.getLogger("rbak.run")
    config = config or BackupConfig()

    options = CopyOptions(
        overwrite=config.overwrite,
        follow_symlinks=config.follow_symlinks,
        preserve_metadata=config.preserve_metadata,
        dry_run=dry_run,
        excludes=list(config.excludes),
    )

    destination: Path | None = None
    try:
        target = resolve(
            source,
            kind,
            overwrite=config.overwrite,
            file_extension=config.file_extension,
            directory_suffix=config.directory_suffix,
        )
        destination = target.destination
        log.info("Backing up %s %s -> %s", target.kind.value, target.source, target.destination)

        if target.kind is BackupKind.FILE:
            stats = copy_file(target.source, target.destination, options)
        else:
            stats = copy_tree(target.source, target.destination, options)
    except RbakError as exc:
        partial = isinstance(exc, CopyError) and exc.partial
        log.info("Backup of %s failed: %s", source, exc)
        return (
            EXIT_PARTIAL_BACKUP if partial else EXIT_RUNTIME_ERROR,
            BackupFailure(
                reason=_failure_reason(exc, destination),
                partially_written=partial,
                error=exc,
            ),
        )
    except OSError as exc:
        log.info("Backup of %s failed: %s", source, exc)
        return EXIT_RUNTIME_ERROR, BackupFailure(reason=f"Backup of {source} failed: {exc}", error=exc)

    log.info(
        "[%s] %s -> %s | files=%s dirs=%s bytes=%s skipped=%s",
        target.kind.value,
        target.source,
        target.destination,
        stats.files_copied,
        stats.dirs_copied,
        stats.bytes_copied,
        stats.skipped,
    )
    return EXIT_SUCCESS, BackupSuccess(target=target, stats=stats, dry_run=dry_run)
