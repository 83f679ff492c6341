"""Installation of the new executable and supporting files."""

from __future__ import annotations

import os
import shutil
from collections.abc import Collection
from enum import Enum
from pathlib import Path

from agh_updater.backup import copy_supporting_files
from agh_updater.errors import FilesystemError, ReplaceFailedError
from agh_updater.files import copy_file
from agh_updater.logging import get_logger
from agh_updater.models import UpdateSession
from agh_updater.paths import is_windows

log = get_logger("agh_updater.install")


class ReplaceStrategy(Enum):
    """How the staged executable is put in place of the old one."""

    ATOMIC_MOVE = "atomic_move"
    # Windows refuses to replace an executable that is in use by renaming.
    COPY_THEN_REMOVE = "copy"

    def install(self, src: Path, dst: Path) -> None:
        if self is ReplaceStrategy.ATOMIC_MOVE:
            os.replace(src, dst)
            return

        copy_file(src, dst)
        shutil.copymode(src, dst)
        try:
            src.unlink()
        except OSError as exc:
            log.warning("updater_staged_exe_not_removed", path=str(src), error=str(exc))


def select_strategy(goos: str, override: str = "auto") -> ReplaceStrategy:
    """Pick the replacement strategy for ``goos`` unless ``override`` names one."""
    if override != "auto":
        return ReplaceStrategy(override)
    if is_windows(goos):
        return ReplaceStrategy.COPY_THEN_REMOVE
    return ReplaceStrategy.ATOMIC_MOVE


def replace(
    session: UpdateSession,
    strategy: ReplaceStrategy,
    *,
    excluded: Collection[str],
) -> None:
    """Install the staged files over the current installation.

    Supporting files go first so that a failure there leaves the executable
    untouched.  A failure after the old executable was moved away leaves it
    in the backup directory.
    """
    try:
        copy_supporting_files(
            session.unpacked_files, session.update_dir, session.work_dir, excluded
        )
    except FilesystemError as exc:
        raise ReplaceFailedError(
            f"copying supporting files from {str(session.update_dir)!r} "
            f"to {str(session.work_dir)!r}: {exc}"
        ) from exc

    log.debug("updater_renaming", src=str(session.current_exe), dst=str(session.backup_exe))
    try:
        os.replace(session.current_exe, session.backup_exe)
    except OSError as exc:
        raise ReplaceFailedError(
            f"moving {str(session.current_exe)!r} to {str(session.backup_exe)!r}: {exc}"
        ) from exc

    log.debug(
        "updater_installing",
        src=str(session.update_exe),
        dst=str(session.current_exe),
        strategy=strategy.value,
    )
    try:
        strategy.install(session.update_exe, session.current_exe)
    except OSError as exc:
        raise ReplaceFailedError(
            f"installing {str(session.update_exe)!r} as {str(session.current_exe)!r}: {exc}"
        ) from exc
