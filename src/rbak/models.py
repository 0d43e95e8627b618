from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rbak.errors import RbakError


class BackupKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class BackupTarget:
    source: Path
    destination: Path
    kind: BackupKind


@dataclass(slots=True)
class CopyStats:
    files_copied: int = 0
    dirs_copied: int = 0
    bytes_copied: int = 0
    skipped: int = 0
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.skipped += 1
        self.warnings.append(message)


@dataclass(slots=True)
class BackupSuccess:
    target: BackupTarget
    stats: CopyStats
    dry_run: bool = False

    @property
    def message(self) -> str:
        verb = "Would create" if self.dry_run else "Created"
        summary = f"files={self.stats.files_copied} bytes={self.stats.bytes_copied}"
        if self.target.kind is BackupKind.DIRECTORY:
            summary = f"dirs={self.stats.dirs_copied} {summary} skipped={self.stats.skipped}"
        return f"{verb} {self.target.destination} ({summary})"


@dataclass(slots=True)
class BackupFailure:
    reason: str
    partially_written: bool = False
    error: RbakError | OSError | None = None

    @property
    def message(self) -> str:
        return self.reason


CopyOutcome = BackupSuccess | BackupFailure
