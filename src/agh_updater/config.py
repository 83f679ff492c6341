"""Configuration management for the AGH updater."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Literal

import httpx
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Largest package accepted by the downloader.  Current release archives are
# roughly 9 MiB.
MAX_PACKAGE_FILE_SIZE = 32 * 1024 * 1024


class Settings(BaseSettings):
    """Updater settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AGH_UPDATER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")
    log_to_file: bool = Field(default=False, description="Also write logs to a rotating file")
    log_file_path: str = Field(default="agh-updater.log", description="Rotating log file path")

    # Layout
    app_name: str = Field(
        default="AdGuardHome",
        description="Executable base name and top-level archive directory name",
    )
    update_subdir: str = Field(default="agh-updater", description="Staging directory name")
    backup_subdir: str = Field(default="agh-backup", description="Backup directory name")

    # Download
    max_package_size: int = Field(
        default=MAX_PACKAGE_FILE_SIZE,
        gt=0,
        description="Maximum package body size in bytes",
    )
    download_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Per-request timeout for the package download in seconds",
    )
    package_base_url: str = Field(
        default="https://static.adtidy.org/adguardhome",
        description="Base URL used to build package URLs when none is configured",
    )
    version_check_url: str = Field(default="", description="Version check URL")

    # Installation
    clean_staging: bool = Field(
        default=False,
        description="Remove the staging directory after each update attempt",
    )
    replace_strategy: Literal["auto", "atomic_move", "copy"] = Field(
        default="auto",
        description="How the new executable is put into place",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def host_goos() -> str:
    """Return the running platform in Go's ``GOOS`` spelling."""
    if sys.platform.startswith(("win", "cygwin")):
        return "windows"
    if sys.platform.startswith("freebsd"):
        return "freebsd"
    return sys.platform


@dataclass
class UpdaterConfig:
    """Settings supplied by the host application for one updater instance.

    ``work_dir`` overrides the directory derived from the executable path.
    Without ``executable_path`` the executable is looked up by name in
    ``work_dir``, or in the current directory.
    ``package_url`` may be left empty, in which case it is built from the
    version and platform fields.
    """

    client: httpx.Client | None = None

    version: str = ""
    channel: str = "release"
    goos: str = field(default_factory=host_goos)
    goarch: str = ""
    goarm: str = ""
    gomips: str = ""

    conf_name: str = "AdGuardHome.yaml"
    work_dir: Path | None = None
    executable_path: Path | None = None

    package_url: str = ""
    version_check_url: str = ""
