"""Shared fixtures for the updater test suite."""

from __future__ import annotations

import io
import stat
import tarfile
import zipfile
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from agh_updater.config import Settings

# (name, content, mode); content None marks a directory entry.
ArchiveEntries = Sequence[tuple[str, bytes | None, int]]

# Release layout used by the end-to-end scenarios.
RELEASE_ENTRIES: list[tuple[str, bytes | None, int]] = [
    ("AdGuardHome/", None, 0o755),
    ("AdGuardHome/AdGuardHome.exe", b"new executable", 0o755),
    ("AdGuardHome/AdGuardHome.yaml", b"bind_port: 3000\n", 0o644),
    ("AdGuardHome/README.md", b"# AdGuard Home\n", 0o644),
]


def write_zip(path: Path, entries: ArchiveEntries) -> Path:
    """Write a zip archive with explicit Unix modes for every entry."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content, mode in entries:
            info = zipfile.ZipInfo(name, date_time=(2024, 1, 1, 0, 0, 0))
            if content is None:
                info.external_attr = ((stat.S_IFDIR | mode) << 16) | 0x10
                archive.writestr(info, b"")
            else:
                info.external_attr = (stat.S_IFREG | mode) << 16
                archive.writestr(info, content)
    return path


def write_tar_gz(path: Path, entries: ArchiveEntries) -> Path:
    """Write a gzip-compressed tar archive."""
    with tarfile.open(path, "w:gz") as archive:
        for name, content, mode in entries:
            info = tarfile.TarInfo(name.rstrip("/"))
            info.mode = mode
            if content is None:
                info.type = tarfile.DIRTYPE
                archive.addfile(info)
            else:
                info.size = len(content)
                archive.addfile(info, io.BytesIO(content))
    return path


ARCHIVE_WRITERS: dict[str, Callable[[Path, ArchiveEntries], Path]] = {
    ".zip": write_zip,
    ".tar.gz": write_tar_gz,
}


@pytest.fixture
def settings() -> Settings:
    """Default settings isolated from any .env file."""
    return Settings(_env_file=None)


@pytest.fixture(params=sorted(ARCHIVE_WRITERS))
def archive_suffix(request: pytest.FixtureRequest) -> str:
    """Run a test once per supported archive format."""
    return request.param


@pytest.fixture
def make_archive(tmp_path: Path, archive_suffix: str) -> Callable[[ArchiveEntries], Path]:
    """Build an archive of the current format from an entry list."""

    def _make(entries: ArchiveEntries, stem: str = "package") -> Path:
        path = tmp_path / f"{stem}{archive_suffix}"
        return ARCHIVE_WRITERS[archive_suffix](path, entries)

    return _make


@pytest.fixture
def release_entries() -> list[tuple[str, bytes | None, int]]:
    """Entries of a typical release package wrapped in ``AdGuardHome/``."""
    return list(RELEASE_ENTRIES)


@pytest.fixture
def write_archive() -> Callable[[Path, ArchiveEntries], Path]:
    """Write an archive whose format follows the target file name."""

    def _write(path: Path, entries: ArchiveEntries) -> Path:
        for suffix, writer in ARCHIVE_WRITERS.items():
            if path.name.endswith(suffix):
                return writer(path, entries)
        raise ValueError(f"unsupported archive name: {path.name}")

    return _write
