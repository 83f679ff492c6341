"""Entry point for a one-shot update."""

import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agh_updater.config import UpdaterConfig
from agh_updater.logging import get_logger, setup_logging
from agh_updater.updater import Updater


class RunSettings(BaseSettings):
    """Host-side values used when the updater runs on its own."""

    model_config = SettingsConfigDict(
        env_prefix="AGH_UPDATER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    version: str = Field(default="", description="Target version")
    channel: str = Field(default="release", description="Release channel")
    goarch: str = Field(default="", description="Target architecture")
    goarm: str = Field(default="", description="ARM variant")
    gomips: str = Field(default="", description="MIPS variant")
    conf_name: str = Field(default="AdGuardHome.yaml", description="Main configuration file")
    package_url: str = Field(default="", description="Package URL override")
    executable_path: Path | None = Field(
        default=None,
        description="Installed executable; defaults to the app executable in work_dir",
    )
    work_dir: Path | None = Field(
        default=None,
        description="Installation directory; defaults to the current directory",
    )
    first_run: bool = Field(default=False, description="No configuration file exists yet")

    def to_config(self) -> UpdaterConfig:
        return UpdaterConfig(
            version=self.version,
            channel=self.channel,
            goarch=self.goarch,
            goarm=self.goarm,
            gomips=self.gomips,
            conf_name=self.conf_name,
            package_url=self.package_url,
            executable_path=self.executable_path,
            work_dir=self.work_dir,
        )


def main() -> int:
    """Run a single update configured from the environment."""
    setup_logging()
    log = get_logger("agh_updater")

    run = RunSettings()
    result = Updater(run.to_config()).update(run.first_run)
    if not result.ok:
        log.error("updater_exit_failure", **result.to_dict())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
