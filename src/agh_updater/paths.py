"""Path derivation for one update call.

Layout relative to the working directory::

    <work_dir>/AdGuardHome[.exe]
    <work_dir>/agh-updater/<package file>      staging
    <work_dir>/agh-updater/AdGuardHome[.exe]   new executable
    <work_dir>/agh-backup/AdGuardHome[.exe]    previous executable
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlsplit

from agh_updater.config import Settings, UpdaterConfig
from agh_updater.errors import ExecutableNotFoundError, InvalidPackageURLError
from agh_updater.logging import get_logger
from agh_updater.models import UpdateSession

log = get_logger("agh_updater.paths")

# Platforms whose release packages are zip archives.
_ZIP_PLATFORMS = frozenset({"windows", "darwin"})


def is_windows(goos: str) -> bool:
    return goos.lower() in ("windows", "win32")


def executable_name(app_name: str, goos: str) -> str:
    """Return the platform-qualified executable file name."""
    return f"{app_name}.exe" if is_windows(goos) else app_name


def executable_names(app_name: str) -> frozenset[str]:
    """Return every executable file name used across platforms."""
    return frozenset({app_name, f"{app_name}.exe"})


def package_file_name(package_url: str) -> str:
    """Return the last path component of ``package_url``.

    Raises ``InvalidPackageURLError`` when the URL cannot be parsed or its
    path ends with ``/`` or is empty.
    """
    try:
        path = urlsplit(package_url).path
    except ValueError as exc:
        raise InvalidPackageURLError(f"invalid package URL: {package_url!r}: {exc}") from exc

    name = path.rsplit("/", 1)[-1]
    if not name:
        raise InvalidPackageURLError(f"invalid package URL: {package_url!r}")
    return name


def default_package_url(config: UpdaterConfig, settings: Settings) -> str:
    """Build the package URL for the configured channel and platform."""
    goos = "windows" if is_windows(config.goos) else config.goos
    arch = config.goarch
    if config.goarm:
        arch = f"{arch}v{config.goarm}"
    elif config.gomips:
        arch = f"{arch}_{config.gomips}"

    ext = "zip" if goos in _ZIP_PLATFORMS else "tar.gz"
    base = settings.package_base_url.rstrip("/")
    return f"{base}/{config.channel}/{settings.app_name}_{goos}_{arch}.{ext}"


def resolve_session(
    exe_path: Path,
    package_url: str,
    settings: Settings,
    *,
    goos: str,
    work_dir: Path | None = None,
) -> UpdateSession:
    """Derive every path used by the pipeline into a new session."""
    work_dir = work_dir if work_dir is not None else exe_path.parent
    update_dir = work_dir / settings.update_subdir
    package_path = update_dir / package_file_name(package_url)
    backup_dir = work_dir / settings.backup_subdir

    session = UpdateSession(
        work_dir=work_dir,
        update_dir=update_dir,
        backup_dir=backup_dir,
        package_path=package_path,
        current_exe=exe_path,
        backup_exe=backup_dir / exe_path.name,
        update_exe=update_dir / executable_name(settings.app_name, goos),
        package_url=package_url,
    )
    log.debug(
        "updater_paths_resolved",
        work_dir=str(work_dir),
        package=str(package_path),
        url=package_url,
    )

    if not exe_path.exists():
        raise ExecutableNotFoundError(f"checking {str(exe_path)!r}: file does not exist")

    return session
