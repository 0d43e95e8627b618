import os
from pathlib import Path

import pytest

from rbak.errors import DestinationExistsError, SourceNotFoundError, UnsupportedTypeError
from rbak.models import BackupKind
from rbak.resolver import backup_path, classify, resolve


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_backup_path_replaces_final_extension() -> None:
    assert backup_path(Path("/data/notes.txt"), BackupKind.FILE) == Path("/data/notes.bak")
    assert backup_path(Path("/data/archive.tar.gz"), BackupKind.FILE) == Path("/data/archive.tar.bak")


def test_backup_path_appends_extension_when_missing() -> None:
    assert backup_path(Path("/data/README"), BackupKind.FILE) == Path("/data/README.bak")


def test_backup_path_appends_directory_suffix() -> None:
    assert backup_path(Path("/data/proj"), BackupKind.DIRECTORY) == Path("/data/proj_bak")


def test_backup_path_honors_custom_names() -> None:
    assert backup_path(Path("a/b.txt"), BackupKind.FILE, file_extension="orig") == Path("a/b.orig")
    assert backup_path(Path("a/proj"), BackupKind.DIRECTORY, directory_suffix=".old") == Path(
        "a/proj.old"
    )


def test_resolve_file(tmp_path: Path) -> None:
    source = tmp_path / "notes.txt"
    _write(source, "hello")

    target = resolve(source)

    assert target.kind is BackupKind.FILE
    assert target.source == source
    assert target.destination == tmp_path / "notes.bak"


def test_resolve_directory(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    source.mkdir()

    target = resolve(str(source))

    assert target.kind is BackupKind.DIRECTORY
    assert target.destination == tmp_path / "proj_bak"


def test_resolve_current_directory_uses_its_real_name(tmp_path: Path, monkeypatch) -> None:
    project = tmp_path / "proj"
    project.mkdir()
    monkeypatch.chdir(project)

    target = resolve(".", BackupKind.DIRECTORY)

    assert target.destination == project.resolve().parent / "proj_bak"


def test_resolve_missing_source(tmp_path: Path) -> None:
    with pytest.raises(SourceNotFoundError) as excinfo:
        resolve(tmp_path / "nope.txt")

    assert excinfo.value.path == tmp_path / "nope.txt"


def test_resolve_rejects_empty_path() -> None:
    with pytest.raises(SourceNotFoundError):
        resolve("  ")


def test_resolve_existing_backup_fails_without_overwrite(tmp_path: Path) -> None:
    _write(tmp_path / "notes.txt", "hello")
    _write(tmp_path / "notes.bak", "old")

    with pytest.raises(DestinationExistsError):
        resolve(tmp_path / "notes.txt")


def test_resolve_existing_backup_allowed_with_overwrite(tmp_path: Path) -> None:
    _write(tmp_path / "notes.txt", "hello")
    _write(tmp_path / "notes.bak", "old")

    target = resolve(tmp_path / "notes.txt", overwrite=True)

    assert target.destination == tmp_path / "notes.bak"


def test_resolve_overwrite_refuses_destination_of_other_kind(tmp_path: Path) -> None:
    (tmp_path / "proj").mkdir()
    _write(tmp_path / "proj_bak", "i am a file")

    with pytest.raises(DestinationExistsError):
        resolve(tmp_path / "proj", overwrite=True)


def test_resolve_refuses_backup_onto_itself(tmp_path: Path) -> None:
    _write(tmp_path / "notes.bak", "hello")

    with pytest.raises(DestinationExistsError):
        resolve(tmp_path / "notes.bak", overwrite=True)


def test_resolve_kind_mismatch(tmp_path: Path) -> None:
    _write(tmp_path / "notes.txt", "hello")
    (tmp_path / "proj").mkdir()

    with pytest.raises(UnsupportedTypeError):
        resolve(tmp_path / "notes.txt", BackupKind.DIRECTORY)
    with pytest.raises(UnsupportedTypeError):
        resolve(tmp_path / "proj", BackupKind.FILE)


def test_resolve_follows_symlink_to_directory(tmp_path: Path) -> None:
    real = tmp_path / "real"
    real.mkdir()
    link = tmp_path / "link"
    link.symlink_to(real, target_is_directory=True)

    target = resolve(link)

    assert target.kind is BackupKind.DIRECTORY
    assert target.destination == tmp_path / "link_bak"


def test_resolve_broken_symlink_is_unsupported(tmp_path: Path) -> None:
    link = tmp_path / "dangling"
    link.symlink_to(tmp_path / "gone")

    assert classify(link) is BackupKind.UNSUPPORTED
    with pytest.raises(UnsupportedTypeError):
        resolve(link)


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")
def test_resolve_special_file_is_unsupported(tmp_path: Path) -> None:
    fifo = tmp_path / "pipe"
    os.mkfifo(fifo)

    with pytest.raises(UnsupportedTypeError):
        resolve(fifo)


def test_resolve_writes_nothing(tmp_path: Path) -> None:
    _write(tmp_path / "proj" / "a.txt", "A")
    before = sorted(p.as_posix() for p in tmp_path.rglob("*"))

    resolve(tmp_path / "proj")

    assert sorted(p.as_posix() for p in tmp_path.rglob("*")) == before


def test_backup_path_treats_trailing_dot_as_empty_extension() -> None:
    assert backup_path(Path("/data/foo."), BackupKind.FILE) == Path("/data/foo.bak")
    assert backup_path(Path("/data/foo.."), BackupKind.FILE) == Path("/data/foo..bak")


def test_resolve_file_with_trailing_dot(tmp_path: Path) -> None:
    _write(tmp_path / "foo.", "x")

    assert resolve(tmp_path / "foo.").destination == tmp_path / "foo.bak"
