"""Bounded package download."""

from __future__ import annotations

import httpx

from agh_updater.errors import DownloadFailedError, PackageTooLargeError, StagingWriteFailedError
from agh_updater.files import write_file
from agh_updater.logging import get_logger
from agh_updater.models import UpdateSession

log = get_logger("agh_updater.download")

PACKAGE_FILE_MODE = 0o755


def read_limited(response: httpx.Response, limit: int) -> bytes:
    """Read the whole response body, failing once it grows past ``limit``."""
    declared = response.headers.get("Content-Length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PackageTooLargeError(limit, int(declared))

    chunks: list[bytes] = []
    total = 0
    for chunk in response.iter_bytes():
        total += len(chunk)
        if total > limit:
            raise PackageTooLargeError(limit)
        chunks.append(chunk)

    return b"".join(chunks)


def download_package(client: httpx.Client, session: UpdateSession, *, max_size: int) -> int:
    """Fetch ``session.package_url`` and store it at ``session.package_path``.

    The body is held in memory until it has been read completely, so an
    oversized package never reaches the disk.  Returns the package size.
    """
    try:
        with client.stream("GET", session.package_url) as response:
            response.raise_for_status()
            log.debug("updater_reading_body", url=session.package_url)
            body = read_limited(response, max_size)
    except httpx.HTTPStatusError as exc:
        raise DownloadFailedError(
            f"http request failed: status {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise DownloadFailedError(f"http request failed: {exc}") from exc
    except httpx.InvalidURL as exc:
        raise DownloadFailedError(f"invalid package URL: {exc}") from exc

    try:
        session.update_dir.mkdir(mode=0o755, exist_ok=True)
    except OSError as exc:
        raise StagingWriteFailedError(f"creating {str(session.update_dir)!r}: {exc}") from exc

    log.debug("updater_saving_package", path=str(session.package_path), size=len(body))
    try:
        write_file(session.package_path, body, PACKAGE_FILE_MODE)
    except OSError as exc:
        raise StagingWriteFailedError(
            f"writing {str(session.package_path)!r}: {exc}"
        ) from exc

    return len(body)
