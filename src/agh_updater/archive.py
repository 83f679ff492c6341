"""Archive extraction for update packages.

Both supported formats are unpacked into a single flat directory: every
entry lands at ``<out_dir>/<base name>`` and the archive's directory
structure is discarded.  The self-named top-level directory of a release
archive (``AdGuardHome/``) is skipped.  Only regular files are reported back
to the caller.
"""

from __future__ import annotations

import os
import shutil
import stat
import tarfile
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path
from typing import IO

from agh_updater.errors import ExtractFailedError, UnknownArchiveFormatError
from agh_updater.logging import get_logger
from agh_updater.models import EntryKind, PackageEntry

log = get_logger("agh_updater.archive")

# Permission bits kept from archive entries.
SAFE_MODE_MASK = 0o755

_DEFAULT_FILE_MODE = 0o644
_DEFAULT_DIR_MODE = 0o755

# Errors raised while decoding or writing a single entry.
_ENTRY_ERRORS = (
    OSError,
    EOFError,
    zlib.error,
    zipfile.BadZipFile,
    tarfile.TarError,
    NotImplementedError,
    RuntimeError,
)

Unpacker = Callable[[Path, Path, str], list[PackageEntry]]


def entry_base_name(raw_name: str) -> str:
    """Return the last component of an archive entry name.

    ``""`` is returned for names that do not point at anything usable.
    """
    name = raw_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    if name in (".", ".."):
        return ""
    return name


def _make_directory(out_dir: Path, name: str, mode: int, app_dir_name: str) -> PackageEntry | None:
    if name == app_dir_name:
        # Top-level AdGuardHome/, nothing to create.
        return None

    path = out_dir / name
    try:
        path.mkdir(mode=mode or _DEFAULT_DIR_MODE)
    except FileExistsError:
        pass
    else:
        log.debug("updater_created_directory", path=str(path))

    return PackageEntry(name=name, kind=EntryKind.DIRECTORY, mode=mode)


def _write_regular_file(out_dir: Path, name: str, mode: int, source: IO[bytes]) -> PackageEntry:
    path = out_dir / name
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as target:
        shutil.copyfileobj(source, target)

    log.debug("updater_created_file", path=str(path))
    return PackageEntry(name=name, kind=EntryKind.FILE, mode=mode)


# ------------------------------------------------------------------
# .zip
# ------------------------------------------------------------------


def _unpack_zip_member(
    archive: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    out_dir: Path,
    app_dir_name: str,
) -> PackageEntry | None:
    name = entry_base_name(info.filename)
    if not name:
        return None

    unix_mode = info.external_attr >> 16
    if info.is_dir():
        mode = ((unix_mode & 0o777) or _DEFAULT_DIR_MODE) & SAFE_MODE_MASK
        return _make_directory(out_dir, name, mode, app_dir_name)

    if stat.S_IFMT(unix_mode) and not stat.S_ISREG(unix_mode):
        log.warning("updater_unsupported_entry", name=name, mode=oct(unix_mode))
        return None

    # Archives built on Windows carry no Unix permission bits.
    mode = ((unix_mode & 0o777) or _DEFAULT_FILE_MODE) & SAFE_MODE_MASK
    with archive.open(info) as source:
        return _write_regular_file(out_dir, name, mode, source)


def unpack_zip(archive_path: Path, out_dir: Path, app_dir_name: str) -> list[PackageEntry]:
    """Unpack all files from a .zip archive into ``out_dir``.

    Existing files are overwritten.  Returns the regular files written.
    """
    files: list[PackageEntry] = []
    try:
        archive = zipfile.ZipFile(archive_path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ExtractFailedError(f"opening zip archive: {exc}") from exc

    with archive:
        for info in archive.infolist():
            try:
                entry = _unpack_zip_member(archive, info, out_dir, app_dir_name)
            except _ENTRY_ERRORS as exc:
                raise ExtractFailedError(f"{info.filename}: {exc}", files) from exc

            if entry is not None and entry.is_file:
                files.append(entry)

    return files


# ------------------------------------------------------------------
# .tar.gz
# ------------------------------------------------------------------


def _unpack_tar_member(
    archive: tarfile.TarFile,
    member: tarfile.TarInfo,
    out_dir: Path,
    app_dir_name: str,
) -> PackageEntry | None:
    name = entry_base_name(member.name)
    if not name:
        return None

    mode = member.mode & SAFE_MODE_MASK
    if member.isdir():
        return _make_directory(out_dir, name, mode, app_dir_name)

    if not member.isreg():
        entry_type = member.type.decode(errors="replace")
        log.warning("updater_unsupported_entry", name=name, type=entry_type)
        return None

    source = archive.extractfile(member)
    if source is None:
        raise tarfile.ReadError(f"no content for regular file {member.name!r}")
    with source:
        return _write_regular_file(out_dir, name, mode, source)


def unpack_tar_gz(archive_path: Path, out_dir: Path, app_dir_name: str) -> list[PackageEntry]:
    """Unpack all files from a .tar.gz archive into ``out_dir``.

    Existing files are overwritten.  Returns the regular files written.
    """
    files: list[PackageEntry] = []
    try:
        archive = tarfile.open(archive_path, mode="r:gz")
    except (OSError, tarfile.TarError) as exc:
        raise ExtractFailedError(f"opening tar.gz archive: {exc}") from exc

    with archive:
        while True:
            try:
                member = archive.next()
            except _ENTRY_ERRORS as exc:
                raise ExtractFailedError(f"reading next entry: {exc}", files) from exc
            if member is None:
                break

            try:
                entry = _unpack_tar_member(archive, member, out_dir, app_dir_name)
            except _ENTRY_ERRORS as exc:
                raise ExtractFailedError(f"{member.name}: {exc}", files) from exc

            if entry is not None and entry.is_file:
                files.append(entry)

    return files


_UNPACKERS: tuple[tuple[str, Unpacker], ...] = (
    (".zip", unpack_zip),
    (".tar.gz", unpack_tar_gz),
)


def extract_package(package_path: Path, out_dir: Path, app_dir_name: str) -> list[PackageEntry]:
    """Extract ``package_path`` into ``out_dir`` using its suffix to pick the format."""
    name = package_path.name
    for suffix, unpack in _UNPACKERS:
        if name.endswith(suffix):
            log.debug("updater_unpacking", package=str(package_path), format=suffix)
            return unpack(package_path, out_dir, app_dir_name)

    raise UnknownArchiveFormatError(f"unknown package extension: {name!r}")
