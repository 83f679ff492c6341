"""Backup of the current installation before it is replaced."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from pathlib import Path, PurePath

from agh_updater.errors import BackupFailedError, FilesystemError
from agh_updater.files import copy_file, write_file
from agh_updater.logging import get_logger
from agh_updater.models import UpdateSession
from agh_updater.paths import executable_names

log = get_logger("agh_updater.backup")


def excluded_names(app_name: str, conf_name: str) -> frozenset[str]:
    """Names handled by the executable and configuration logic instead of
    the supporting-file copy."""
    return executable_names(app_name) | {conf_name}


def copy_supporting_files(
    files: Iterable[str],
    src_dir: Path,
    dst_dir: Path,
    excluded: Collection[str],
) -> list[str]:
    """Copy every file in ``files`` from ``src_dir`` to ``dst_dir``.

    Names in ``excluded`` are never touched.  A file missing from ``src_dir``
    is skipped, since older installations may lack files that a newer
    package introduces.  Returns the names that were copied.
    """
    copied: list[str] = []
    for f in files:
        name = PurePath(f).name
        if name in excluded:
            continue

        src = src_dir / name
        dst = dst_dir / name
        try:
            data = src.read_bytes()
        except FileNotFoundError:
            log.debug("updater_supporting_file_missing", path=str(src))
            continue
        except OSError as exc:
            raise FilesystemError(f"reading {str(src)!r}: {exc}") from exc

        try:
            write_file(dst, data)
        except OSError as exc:
            raise FilesystemError(f"writing {str(dst)!r}: {exc}") from exc

        log.debug("updater_copied", src=str(src), dst=str(dst))
        copied.append(name)

    return copied


def backup(session: UpdateSession, *, app_name: str, conf_name: str, first_run: bool) -> None:
    """Back up the configuration and supporting files.

    The configuration file is skipped on the first run, when it does not
    exist yet.
    """
    log.debug("updater_backing_up", backup_dir=str(session.backup_dir))
    try:
        session.backup_dir.mkdir(mode=0o755, exist_ok=True)
    except OSError as exc:
        raise BackupFailedError(f"creating {str(session.backup_dir)!r}: {exc}") from exc

    if not first_run:
        conf_src = session.work_dir / conf_name
        conf_dst = session.backup_dir / conf_name
        try:
            copy_file(conf_src, conf_dst)
        except OSError as exc:
            raise BackupFailedError(f"copying {str(conf_src)!r}: {exc}") from exc

    try:
        copy_supporting_files(
            session.unpacked_files,
            session.work_dir,
            session.backup_dir,
            excluded_names(app_name, conf_name),
        )
    except FilesystemError as exc:
        raise BackupFailedError(
            f"copying supporting files from {str(session.work_dir)!r} "
            f"to {str(session.backup_dir)!r}: {exc}"
        ) from exc
