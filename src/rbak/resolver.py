from __future__ import annotations

import os
from pathlib import Path
import stat

from rbak.config import DEFAULT_DIRECTORY_SUFFIX, DEFAULT_FILE_EXTENSION
from rbak.errors import (
    DestinationExistsError,
    ResolveError,
    SourceNotFoundError,
    UnsupportedTypeError,
)
from rbak.models import BackupKind, BackupTarget


def classify(path: Path) -> BackupKind:
    """Return the kind of ``path``, following symlinks.

    Raises SourceNotFoundError when nothing exists at ``path``. A dangling
    symlink exists but points nowhere, so it is UNSUPPORTED rather than
    missing.
    """
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        if os.path.islink(path):
            return BackupKind.UNSUPPORTED
        raise SourceNotFoundError(f"Source does not exist: {path}", path) from None
    except OSError as exc:
        raise ResolveError(f"Cannot inspect {path}: {exc}", path) from exc

    if stat.S_ISREG(mode):
        return BackupKind.FILE
    if stat.S_ISDIR(mode):
        return BackupKind.DIRECTORY
    return BackupKind.UNSUPPORTED


def _named_path(path: Path) -> Path:
    if path.name and path.name != "..":
        return path
    resolved = path.resolve()
    if not resolved.name:
        raise ResolveError(f"Cannot derive a backup name from {path}", path)
    return resolved


def backup_path(
    path: Path,
    kind: BackupKind,
    file_extension: str = DEFAULT_FILE_EXTENSION,
    directory_suffix: str = DEFAULT_DIRECTORY_SUFFIX,
) -> Path:
    """Compute the sibling backup path for ``path``.

    Files get their last extension replaced (``notes.txt`` -> ``notes.bak``,
    ``archive.tar.gz`` -> ``archive.tar.bak``, ``README`` -> ``README.bak``).
    A single trailing dot counts as an empty extension (``foo.`` -> ``foo.bak``).
    Directories get the suffix appended to their name (``proj`` -> ``proj_bak``).
    """
    named = _named_path(path)
    if kind is BackupKind.FILE:
        if named.name.endswith(".") and named.name.strip("."):
            return named.with_name(f"{named.name}{file_extension}")
        return named.with_suffix(f".{file_extension}")
    if kind is BackupKind.DIRECTORY:
        return named.with_name(f"{named.name}{directory_suffix}")
    raise UnsupportedTypeError(f"{path} is neither a regular file nor a directory", path)


def _destination_matches_kind(destination: Path, kind: BackupKind) -> bool:
    if destination.is_symlink():
        return False
    if kind is BackupKind.FILE:
        return destination.is_file()
    return destination.is_dir()


def resolve(
    source: Path | str,
    expected_kind: BackupKind | None = None,
    *,
    overwrite: bool = False,
    file_extension: str = DEFAULT_FILE_EXTENSION,
    directory_suffix: str = DEFAULT_DIRECTORY_SUFFIX,
) -> BackupTarget:
    if isinstance(source, str):
        if not source.strip():
            raise SourceNotFoundError("Source path must not be empty")
        source = Path(source)

    kind = classify(source)
    if kind is BackupKind.UNSUPPORTED:
        raise UnsupportedTypeError(
            f"{source} is neither a regular file nor a directory (special file or broken symlink)",
            source,
        )
    if expected_kind is not None and kind is not expected_kind:
        label = "regular file" if expected_kind is BackupKind.FILE else "directory"
        raise UnsupportedTypeError(f"{source} is not a {label}", source)

    destination = backup_path(source, kind, file_extension, directory_suffix)

    if destination.absolute() == _named_path(source).absolute():
        raise DestinationExistsError(
            f"Backup path {destination} is the source itself", destination
        )

    if os.path.lexists(destination):
        if not overwrite:
            raise DestinationExistsError(f"Backup already exists: {destination}", destination)
        if not _destination_matches_kind(destination, kind):
            raise DestinationExistsError(
                f"Backup path {destination} exists and is not a {kind.value}; refusing to overwrite",
                destination,
            )

    return BackupTarget(source=source, destination=destination, kind=kind)
