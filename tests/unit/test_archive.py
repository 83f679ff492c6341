"""Tests for agh_updater.archive: flat extraction of .zip and .tar.gz packages."""

from __future__ import annotations

import io
import random
import stat
import tarfile
import zipfile
from pathlib import Path

import pytest

from agh_updater.archive import (
    entry_base_name,
    extract_package,
    unpack_tar_gz,
    unpack_zip,
)
from agh_updater.errors import ExtractFailedError, UnknownArchiveFormatError
from agh_updater.models import EntryKind

APP_DIR = "AdGuardHome"


def _out_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out


# ---------------------------------------------------------------------------
# entry_base_name
# ---------------------------------------------------------------------------


class TestEntryBaseName:
    """Tests for the archive entry name flattening helper."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("README.md", "README.md"),
            ("sub/dir/file.txt", "file.txt"),
            ("AdGuardHome/", "AdGuardHome"),
            ("win\\style\\file.txt", "file.txt"),
            ("", ""),
            ("./", ""),
            ("evil/..", ""),
        ],
    )
    def test_base_name(self, raw: str, expected: str) -> None:
        assert entry_base_name(raw) == expected


# ---------------------------------------------------------------------------
# Behaviour shared by both formats
# ---------------------------------------------------------------------------


class TestExtractPackage:
    """Tests run against every supported archive format."""

    def test_release_layout_is_flattened_in_order(
        self, tmp_path: Path, make_archive, release_entries
    ) -> None:
        out = _out_dir(tmp_path)
        package = make_archive(release_entries)

        entries = extract_package(package, out, APP_DIR)

        assert [e.name for e in entries] == ["AdGuardHome.exe", "AdGuardHome.yaml", "README.md"]
        assert all(e.kind is EntryKind.FILE for e in entries)
        assert (out / "README.md").read_bytes() == b"# AdGuard Home\n"
        assert not (out / APP_DIR).exists()

    def test_only_app_directory_yields_nothing(self, tmp_path: Path, make_archive) -> None:
        out = _out_dir(tmp_path)
        package = make_archive([("AdGuardHome/", None, 0o755)])

        assert extract_package(package, out, APP_DIR) == []
        assert list(out.iterdir()) == []

    def test_nested_file_lands_in_out_dir(self, tmp_path: Path, make_archive) -> None:
        out = _out_dir(tmp_path)
        package = make_archive([("sub/dir/file.txt", b"data", 0o644)])

        entries = extract_package(package, out, APP_DIR)

        assert [e.name for e in entries] == ["file.txt"]
        assert (out / "file.txt").read_bytes() == b"data"
        assert not (out / "sub").exists()

    def test_other_directories_are_created_but_not_listed(
        self, tmp_path: Path, make_archive
    ) -> None:
        out = _out_dir(tmp_path)
        package = make_archive(
            [
                ("AdGuardHome/", None, 0o755),
                ("AdGuardHome/data/", None, 0o755),
                ("AdGuardHome/data/filter.txt", b"||example.org^", 0o644),
            ]
        )

        entries = extract_package(package, out, APP_DIR)

        assert (out / "data").is_dir()
        assert [e.name for e in entries] == ["filter.txt"]
        assert (out / "filter.txt").exists()

    def test_existing_directory_is_tolerated(self, tmp_path: Path, make_archive) -> None:
        out = _out_dir(tmp_path)
        (out / "data").mkdir()
        package = make_archive([("data/", None, 0o755), ("data/a.txt", b"a", 0o644)])

        entries = extract_package(package, out, APP_DIR)

        assert [e.name for e in entries] == ["a.txt"]

    def test_existing_files_are_overwritten(self, tmp_path: Path, make_archive) -> None:
        out = _out_dir(tmp_path)
        (out / "README.md").write_bytes(b"old contents that are longer")
        package = make_archive([("README.md", b"new", 0o644)])

        extract_package(package, out, APP_DIR)

        assert (out / "README.md").read_bytes() == b"new"

    def test_unsafe_mode_bits_are_masked(self, tmp_path: Path, make_archive) -> None:
        out = _out_dir(tmp_path)
        package = make_archive([("AdGuardHome", b"binary", 0o4777)])

        entries = extract_package(package, out, APP_DIR)

        assert entries[0].mode == 0o755
        on_disk = stat.S_IMODE((out / "AdGuardHome").stat().st_mode)
        assert on_disk & (stat.S_ISUID | stat.S_IWGRP | stat.S_IWOTH) == 0

    def test_failure_returns_partial_entries(self, tmp_path: Path, make_archive) -> None:
        out = _out_dir(tmp_path)
        # A directory where a file should go cannot be opened for writing.
        (out / "b.txt").mkdir()
        package = make_archive(
            [("a.txt", b"a", 0o644), ("b.txt", b"b", 0o644), ("c.txt", b"c", 0o644)]
        )

        with pytest.raises(ExtractFailedError) as exc_info:
            extract_package(package, out, APP_DIR)

        assert [e.name for e in exc_info.value.entries] == ["a.txt"]
        assert not (out / "c.txt").exists()

    def test_corrupt_archive_fails(self, tmp_path: Path, archive_suffix: str) -> None:
        out = _out_dir(tmp_path)
        package = tmp_path / f"broken{archive_suffix}"
        package.write_bytes(b"this is not an archive")

        with pytest.raises(ExtractFailedError):
            extract_package(package, out, APP_DIR)


class TestFormatSelection:
    """Tests for suffix-based format dispatch."""

    @pytest.mark.parametrize("name", ["package.rar", "package.tar", "package.gz", "package"])
    def test_unknown_suffix_rejected(self, tmp_path: Path, name: str) -> None:
        package = tmp_path / name
        package.write_bytes(b"")

        with pytest.raises(UnknownArchiveFormatError):
            extract_package(package, _out_dir(tmp_path), APP_DIR)


# ---------------------------------------------------------------------------
# Format specifics
# ---------------------------------------------------------------------------


class TestZipSpecifics:
    """Tests for zip-only entry handling."""

    def test_symlink_entry_is_skipped(self, tmp_path: Path) -> None:
        package = tmp_path / "package.zip"
        with zipfile.ZipFile(package, "w") as archive:
            link = zipfile.ZipInfo("link")
            link.external_attr = (stat.S_IFLNK | 0o777) << 16
            archive.writestr(link, "README.md")
            archive.writestr("README.md", "readme")
        out = _out_dir(tmp_path)

        entries = unpack_zip(package, out, APP_DIR)

        assert [e.name for e in entries] == ["README.md"]
        assert not (out / "link").exists()

    def test_entry_without_unix_mode_gets_default(self, tmp_path: Path) -> None:
        package = tmp_path / "package.zip"
        with zipfile.ZipFile(package, "w") as archive:
            info = zipfile.ZipInfo("notes.txt")
            info.external_attr = 0
            archive.writestr(info, "notes")
        out = _out_dir(tmp_path)

        entries = unpack_zip(package, out, APP_DIR)

        assert entries[0].mode == 0o644


class TestTarSpecifics:
    """Tests for tar-only entry handling."""

    def test_symlink_entry_is_skipped(self, tmp_path: Path) -> None:
        package = tmp_path / "package.tar.gz"
        with tarfile.open(package, "w:gz") as archive:
            link = tarfile.TarInfo("AdGuardHome/link")
            link.type = tarfile.SYMTYPE
            link.linkname = "/etc/passwd"
            archive.addfile(link)
            data = b"readme"
            info = tarfile.TarInfo("AdGuardHome/README.md")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
        out = _out_dir(tmp_path)

        entries = unpack_tar_gz(package, out, APP_DIR)

        assert [e.name for e in entries] == ["README.md"]
        assert not (out / "link").exists()

    def test_truncated_archive_fails(self, tmp_path: Path) -> None:
        package = tmp_path / "package.tar.gz"
        rng = random.Random(0)
        with tarfile.open(package, "w:gz") as archive:
            for name in ("first.bin", "second.bin"):
                data = rng.randbytes(20000)
                info = tarfile.TarInfo(name)
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
        raw = package.read_bytes()
        package.write_bytes(raw[: len(raw) * 3 // 4])
        out = _out_dir(tmp_path)

        with pytest.raises(ExtractFailedError) as exc_info:
            unpack_tar_gz(package, out, APP_DIR)

        assert [e.name for e in exc_info.value.entries] == ["first.bin"]
