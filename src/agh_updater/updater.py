"""Update orchestrator.

Runs one update as a linear sequence of stages::

    resolve paths -> download -> extract -> back up -> replace

The first failing stage ends the call; nothing is rolled back.  The previous
executable and supporting files remain in the backup directory for manual
recovery.
"""

from __future__ import annotations

import shutil
from contextlib import AbstractContextManager, nullcontext
from datetime import datetime
from pathlib import Path

import httpx

from agh_updater.archive import extract_package
from agh_updater.backup import backup, excluded_names
from agh_updater.config import Settings, UpdaterConfig, get_settings
from agh_updater.download import download_package
from agh_updater.errors import (
    ExtractFailedError,
    StageError,
    UpdateInProgressError,
    UpdaterError,
)
from agh_updater.install import ReplaceStrategy, replace, select_strategy
from agh_updater.locks import ReadWriteLock
from agh_updater.logging import get_logger
from agh_updater.models import UpdateResult, UpdateSession, UpdateStage
from agh_updater.paths import default_package_url, executable_name, resolve_session

log = get_logger("agh_updater.updater")


class Updater:
    """Self-updater for the installed executable.

    Typical use::

        updater = Updater(UpdaterConfig(version="v0.107.0", goarch="amd64"))
        result = updater.update(first_run=False)
        result.raise_for_error()

    Only one update runs at a time.  ``version_check_url`` may be read
    concurrently with other readers but waits for a running update.
    """

    def __init__(self, config: UpdaterConfig, settings: Settings | None = None) -> None:
        self._config = config
        self._settings = settings or get_settings()
        self._strategy = select_strategy(config.goos, self._settings.replace_strategy)
        self._lock = ReadWriteLock()
        self._state = UpdateStage.IDLE

    # ------------------------------------------------------------------
    # Public status surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> UpdateStage:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._lock.write_locked

    @property
    def strategy(self) -> ReplaceStrategy:
        return self._strategy

    @property
    def version_check_url(self) -> str:
        """Return the version check URL."""
        with self._lock.read():
            return self._config.version_check_url or self._settings.version_check_url

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, first_run: bool, *, blocking: bool = True) -> UpdateResult:
        """Run the update pipeline and return its outcome.

        If ``first_run`` is true the configuration file is assumed not to
        exist yet and is not backed up.  With ``blocking=False`` a call made
        while another update is running fails immediately instead of waiting.
        """
        if not self._lock.acquire_write(blocking=blocking):
            return UpdateResult(
                status=UpdateStage.FAILED,
                error=UpdateInProgressError("update already in progress"),
                completed_at=datetime.now().isoformat(),
            )

        try:
            return self._do_update(first_run)
        finally:
            self._lock.release_write()

    def _do_update(self, first_run: bool) -> UpdateResult:
        settings = self._settings
        result = UpdateResult(status=UpdateStage.FAILED)
        session: UpdateSession | None = None

        try:
            self._state = UpdateStage.RESOLVING
            package_url = self._config.package_url or default_package_url(self._config, settings)
            result.package_url = package_url
            log.info(
                "updater_updating",
                url=package_url,
                version=self._config.version,
                channel=self._config.channel,
            )
            session = resolve_session(
                self._executable_path(),
                package_url,
                settings,
                goos=self._config.goos,
                work_dir=self._config.work_dir,
            )
            result.steps_completed.append("resolve")

            self._state = UpdateStage.DOWNLOADING
            with self._http_client() as client:
                size = download_package(client, session, max_size=settings.max_package_size)
            log.debug("updater_downloaded", path=str(session.package_path), size=size)
            result.steps_completed.append("download")

            self._state = UpdateStage.EXTRACTING
            entries = extract_package(session.package_path, session.update_dir, settings.app_name)
            session.unpacked_files = [entry.name for entry in entries]
            result.unpacked_files = list(session.unpacked_files)
            result.steps_completed.append("extract")

            self._state = UpdateStage.BACKING_UP
            backup(
                session,
                app_name=settings.app_name,
                conf_name=self._config.conf_name,
                first_run=first_run,
            )
            result.steps_completed.append("backup")

            self._state = UpdateStage.REPLACING
            replace(
                session,
                self._strategy,
                excluded=excluded_names(settings.app_name, self._config.conf_name),
            )
            result.steps_completed.append("replace")

        except UpdaterError as exc:
            if isinstance(exc, ExtractFailedError):
                result.unpacked_files = [entry.name for entry in exc.entries]
            error = StageError(self._state, exc)
            error.__cause__ = exc
            result.error = error
            result.status = UpdateStage.FAILED
            log.error("updater_failed", stage=self._state.value, error=str(error))
        else:
            result.status = UpdateStage.DONE
            log.info("updater_finished", url=result.package_url)
        finally:
            if session is not None and settings.clean_staging:
                self._clean(session)
            result.completed_at = datetime.now().isoformat()
            self._state = result.status

        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _executable_path(self) -> Path:
        """Return the installed executable.

        Without an explicit path it is looked up by name in the working
        directory, or the current directory when none is configured.
        """
        if self._config.executable_path is not None:
            return Path(self._config.executable_path)
        work_dir = Path(self._config.work_dir) if self._config.work_dir is not None else Path.cwd()
        return work_dir / executable_name(self._settings.app_name, self._config.goos)

    def _http_client(self) -> AbstractContextManager[httpx.Client]:
        if self._config.client is not None:
            return nullcontext(self._config.client)
        return httpx.Client(timeout=self._settings.download_timeout, follow_redirects=True)

    def _clean(self, session: UpdateSession) -> None:
        """Remove the staging directory and everything in it."""
        log.debug("updater_cleaning", path=str(session.update_dir))
        try:
            shutil.rmtree(session.update_dir)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("updater_clean_failed", path=str(session.update_dir), error=str(exc))
