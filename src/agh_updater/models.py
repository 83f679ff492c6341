"""Data models for the update pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from agh_updater.errors import StageError, UpdaterError


class UpdateStage(Enum):
    """States of one update call."""

    IDLE = "idle"
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    BACKING_UP = "backing_up"
    REPLACING = "replacing"
    DONE = "done"
    FAILED = "failed"

    @property
    def description(self) -> str:
        return _STAGE_DESCRIPTIONS.get(self, self.value)


_STAGE_DESCRIPTIONS = {
    UpdateStage.RESOLVING: "preparing",
    UpdateStage.DOWNLOADING: "downloading package file",
    UpdateStage.EXTRACTING: "unpacking",
    UpdateStage.BACKING_UP: "making backup",
    UpdateStage.REPLACING: "replacing",
}


class EntryKind(Enum):
    """Kind of an extracted archive entry."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class PackageEntry:
    """One entry written by the archive extractor."""

    name: str  # base name only
    kind: EntryKind
    mode: int

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE


@dataclass
class UpdateSession:
    """Paths and results for a single update call."""

    work_dir: Path
    update_dir: Path  # <work_dir>/agh-updater
    backup_dir: Path  # <work_dir>/agh-backup
    package_path: Path  # <update_dir>/<package file name>
    current_exe: Path
    backup_exe: Path  # <backup_dir>/<current exe name>
    update_exe: Path  # <update_dir>/AdGuardHome[.exe]
    package_url: str
    unpacked_files: list[str] = field(default_factory=list)


@dataclass
class UpdateResult:
    """Result of an update attempt."""

    status: UpdateStage
    package_url: str = ""
    error: UpdaterError | None = None
    steps_completed: list[str] = field(default_factory=list)
    unpacked_files: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is UpdateStage.DONE

    @property
    def failed_stage(self) -> UpdateStage | None:
        return self.error.stage if isinstance(self.error, StageError) else None

    def raise_for_error(self) -> None:
        """Raise the recorded error if the update failed."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "package_url": self.package_url,
            "error": str(self.error) if self.error is not None else None,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "steps_completed": self.steps_completed,
            "unpacked_files": self.unpacked_files,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }
