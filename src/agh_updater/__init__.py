"""Self-updater for an installed AdGuard Home style binary.

Downloads a release package, unpacks it into a staging directory, backs up
the current executable and supporting files, and swaps the new files in.
"""

from agh_updater.config import Settings, UpdaterConfig, get_settings
from agh_updater.errors import (
    BackupFailedError,
    DownloadFailedError,
    ExecutableNotFoundError,
    ExtractFailedError,
    FilesystemError,
    InvalidPackageURLError,
    PackageTooLargeError,
    ReplaceFailedError,
    StageError,
    StagingWriteFailedError,
    UnknownArchiveFormatError,
    UpdateInProgressError,
    UpdaterError,
)
from agh_updater.install import ReplaceStrategy
from agh_updater.models import EntryKind, PackageEntry, UpdateResult, UpdateSession, UpdateStage
from agh_updater.updater import Updater

__version__ = "0.1.0"

__all__ = [
    "BackupFailedError",
    "DownloadFailedError",
    "EntryKind",
    "ExecutableNotFoundError",
    "ExtractFailedError",
    "FilesystemError",
    "InvalidPackageURLError",
    "PackageEntry",
    "PackageTooLargeError",
    "ReplaceFailedError",
    "ReplaceStrategy",
    "Settings",
    "StageError",
    "StagingWriteFailedError",
    "UnknownArchiveFormatError",
    "UpdateInProgressError",
    "UpdateResult",
    "UpdateSession",
    "UpdateStage",
    "Updater",
    "UpdaterConfig",
    "UpdaterError",
    "get_settings",
]
