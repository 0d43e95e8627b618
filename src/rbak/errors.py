from __future__ import annotations

from pathlib import Path


class RbakError(RuntimeError):
    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ResolveError(RbakError):
    pass


class SourceNotFoundError(ResolveError):
    pass


class DestinationExistsError(ResolveError):
    pass


class UnsupportedTypeError(ResolveError):
    pass


class CopyError(RbakError):
    # relative_path is relative to the tree root; partial means written entries were left behind.
    def __init__(
        self,
        message: str,
        path: Path | None = None,
        relative_path: Path | None = None,
        cause: BaseException | None = None,
        partial: bool = False,
    ) -> None:
        super().__init__(message, path)
        self.relative_path = relative_path
        self.cause = cause
        self.partial = partial


class CopyIoError(CopyError):
    pass


class CopyDestinationExistsError(CopyError):
    pass


class CycleDetectedError(CopyError):
    pass


class InvalidDestinationError(CopyError):
    pass
