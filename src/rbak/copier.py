from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import shutil
import tempfile

from rbak.errors import (
    CopyDestinationExistsError,
    CopyIoError,
    CycleDetectedError,
    InvalidDestinationError,
)
from rbak.ignore_engine import build_ignore_engine
from rbak.models import CopyStats

logger = logging.getLogger(__name__)

_DirIdentity = tuple[int, int]


@dataclass(slots=True)
class CopyOptions:
    overwrite: bool = False
    follow_symlinks: bool = False
    preserve_metadata: bool = False
    dry_run: bool = False
    excludes: list[str] = field(default_factory=list)


def _safe_copy(source_file: Path, destination_file: Path, preserve_metadata: bool) -> int:
    with tempfile.NamedTemporaryFile(
        delete=False,
        dir=str(destination_file.parent),
        prefix=f".{destination_file.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copyfile(source_file, tmp_path)
        if preserve_metadata:
            shutil.copystat(source_file, tmp_path)
        else:
            shutil.copymode(source_file, tmp_path)
        size = tmp_path.stat().st_size
        tmp_path.replace(destination_file)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
    return size


def copy_file(source: Path, destination: Path, options: CopyOptions | None = None) -> CopyStats:
    """Copy one regular file to ``destination``.

    Only the permission bits travel with the content; ownership and extended
    attributes are not preserved. Timestamps are copied too when
    ``preserve_metadata`` is set.
    """
    options = options or CopyOptions()
    stats = CopyStats()

    if not options.overwrite and os.path.lexists(destination):
        raise CopyDestinationExistsError(f"Backup already exists: {destination}", destination)

    if options.dry_run:
        try:
            stats.bytes_copied = source.stat().st_size
        except OSError as exc:
            raise CopyIoError(f"Cannot read {source}: {exc}", source, cause=exc) from exc
        stats.files_copied = 1
        return stats

    try:
        stats.bytes_copied = _safe_copy(source, destination, options.preserve_metadata)
    except OSError as exc:
        raise CopyIoError(
            f"Failed to copy {source} to {destination}: {exc}", source, cause=exc
        ) from exc

    stats.files_copied = 1
    logger.debug("Copied %s -> %s (%s bytes)", source, destination, stats.bytes_copied)
    return stats


def _validate_paths(source_root: Path, destination_root: Path) -> None:
    source_resolved = source_root.resolve()
    destination_resolved = destination_root.resolve()

    if source_resolved == destination_resolved:
        raise InvalidDestinationError(
            f"Source and destination are equal: {source_root}", destination_root
        )

    if destination_resolved.is_relative_to(source_resolved):
        raise InvalidDestinationError(
            f"Destination is inside source, which would recurse: {destination_root}",
            destination_root,
        )


def _create_root(destination_root: Path, options: CopyOptions) -> None:
    if options.dry_run:
        if os.path.lexists(destination_root) and not options.overwrite:
            raise CopyDestinationExistsError(
                f"Backup already exists: {destination_root}", destination_root
            )
        return

    try:
        destination_root.mkdir(exist_ok=options.overwrite)
    except FileExistsError as exc:
        raise CopyDestinationExistsError(
            f"Backup already exists: {destination_root}", destination_root, cause=exc
        ) from exc
    except OSError as exc:
        raise CopyIoError(
            f"Cannot create {destination_root}: {exc}", destination_root, cause=exc
        ) from exc


def _identity(path: str | Path) -> _DirIdentity:
    st = os.stat(path)
    return st.st_dev, st.st_ino


def _io_error(
    action: str, source_path: Path, relative_path: Path, exc: OSError, options: CopyOptions
) -> CopyIoError:
    return CopyIoError(
        f"Failed to {action} {relative_path.as_posix()}: {exc}",
        source_path,
        relative_path=relative_path,
        cause=exc,
        partial=not options.dry_run,
    )


def copy_tree(
    source_root: Path,
    destination_root: Path,
    options: CopyOptions | None = None,
) -> CopyStats:
    options = options or CopyOptions()
    _validate_paths(source_root, destination_root)

    ignore_engine = build_ignore_engine(options.excludes)
    stats = CopyStats()

    _create_root(destination_root, options)
    stats.dirs_copied += 1

    root_ancestors: tuple[_DirIdentity, ...] = ()
    if options.follow_symlinks:
        root_ancestors = (_identity(source_root),)

    pending: list[tuple[Path, tuple[_DirIdentity, ...]]] = [(Path(), root_ancestors)]

    while pending:
        rel_dir, ancestors = pending.pop()
        source_dir = source_root / rel_dir
        destination_dir = destination_root / rel_dir

        if rel_dir != Path():
            if not options.dry_run:
                try:
                    destination_dir.mkdir(exist_ok=options.overwrite)
                except OSError as exc:
                    raise _io_error("create directory", source_dir, rel_dir, exc, options) from exc
            stats.dirs_copied += 1

        try:
            with os.scandir(source_dir) as iterator:
                entries = list(iterator)
        except OSError as exc:
            raise _io_error("read directory", source_dir, rel_dir, exc, options) from exc

        subdirs: list[tuple[Path, tuple[_DirIdentity, ...]]] = []
        for entry in entries:
            rel_path = rel_dir / entry.name
            source_path = Path(entry.path)

            if entry.is_symlink():
                if not options.follow_symlinks:
                    _skip(stats, f"skipped symlink {rel_path.as_posix()}")
                    continue
                if not os.path.exists(entry.path):
                    _skip(stats, f"skipped broken symlink {rel_path.as_posix()}")
                    continue

            follow = options.follow_symlinks
            if entry.is_dir(follow_symlinks=follow):
                if ignore_engine and ignore_engine.is_ignored(rel_path, is_dir=True):
                    stats.skipped += 1
                    continue
                child_ancestors = ancestors
                if follow:
                    try:
                        identity = _identity(entry.path)
                    except OSError as exc:
                        raise _io_error("inspect", source_path, rel_path, exc, options) from exc
                    if identity in ancestors:
                        raise CycleDetectedError(
                            f"Symlink cycle at {rel_path.as_posix()}: it leads back to a "
                            "directory that is already being copied",
                            source_path,
                            relative_path=rel_path,
                            partial=not options.dry_run,
                        )
                    child_ancestors = ancestors + (identity,)
                subdirs.append((rel_path, child_ancestors))
            elif entry.is_file(follow_symlinks=follow):
                if ignore_engine and ignore_engine.is_ignored(rel_path):
                    stats.skipped += 1
                    continue
                _copy_tree_file(source_path, destination_root / rel_path, rel_path, options, stats)
            else:
                _skip(stats, f"skipped unsupported entry {rel_path.as_posix()}")

        # Reversed so the first listed subdirectory is copied first.
        pending.extend(reversed(subdirs))

    return stats


def _copy_tree_file(
    source_path: Path,
    destination_path: Path,
    rel_path: Path,
    options: CopyOptions,
    stats: CopyStats,
) -> None:
    try:
        if options.dry_run:
            size = source_path.stat().st_size
        else:
            size = _safe_copy(source_path, destination_path, options.preserve_metadata)
    except OSError as exc:
        raise _io_error("copy", source_path, rel_path, exc, options) from exc

    stats.files_copied += 1
    stats.bytes_copied += size
    logger.debug("Copied %s", rel_path.as_posix())


def _skip(stats: CopyStats, message: str) -> None:
    logger.info("%s", message)
    stats.warn(message)
