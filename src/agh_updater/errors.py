"""Error taxonomy for the update pipeline.

Every stage raises a subclass of :class:`UpdaterError`, chained to the
underlying ``OSError``/``httpx`` exception.  The orchestrator wraps the first
failure in a :class:`StageError` that records which stage it came from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agh_updater.models import PackageEntry, UpdateStage


class UpdaterError(Exception):
    """Base class for all updater failures."""


class InvalidPackageURLError(UpdaterError):
    """The package URL has no file name component."""


class ExecutableNotFoundError(UpdaterError):
    """The currently installed executable does not exist."""


class DownloadFailedError(UpdaterError):
    """The HTTP request for the package failed."""


class PackageTooLargeError(UpdaterError):
    """The package body exceeds the configured size limit."""

    def __init__(self, limit: int, received: int | None = None) -> None:
        self.limit = limit
        self.received = received
        detail = f"{received} bytes" if received is not None else "body"
        super().__init__(f"package {detail} exceeds limit of {limit} bytes")


class StagingWriteFailedError(UpdaterError):
    """The package could not be written to the staging directory."""


class UnknownArchiveFormatError(UpdaterError):
    """The package file name has an unsupported archive suffix."""


class ExtractFailedError(UpdaterError):
    """Extraction stopped at an unrecoverable entry.

    ``entries`` holds the files extracted before the failure.
    """

    def __init__(self, message: str, entries: list[PackageEntry] | None = None) -> None:
        super().__init__(message)
        self.entries: list[PackageEntry] = list(entries or [])


class BackupFailedError(UpdaterError):
    """The current installation could not be backed up."""


class ReplaceFailedError(UpdaterError):
    """The new files could not be installed."""


class FilesystemError(UpdaterError):
    """A copy, create or remove operation failed."""


class StageError(UpdaterError):
    """A pipeline stage failed; the stage error is ``__cause__``."""

    def __init__(self, stage: UpdateStage, cause: UpdaterError) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage.description}: {cause}")


class UpdateInProgressError(UpdaterError):
    """A non-blocking update was requested while another one is running."""
