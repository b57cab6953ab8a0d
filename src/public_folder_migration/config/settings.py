"""Configuration and environment settings for the export tool."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Exchange (EWS) connection settings for the public folder source."""

    model_config = SettingsConfigDict(extra="forbid")

    primary_smtp_address: Annotated[str, Field(min_length=3, pattern=r".+@.+\..+")]
    username: Annotated[str, Field(min_length=1)]
    password: Annotated[str, Field(min_length=1, repr=False)]
    server: str | None = None

    start_path: str = "\\"

    @field_validator("start_path")
    @classmethod
    def _normalize_start_path(cls, value: str) -> str:
        """Normalize the start path to a single leading backslash.

        Args:
            value: Raw start path, using ``\\`` or ``/`` as separator.

        Returns:
            Normalized path such as ``\\Sales\\Archive`` (``\\`` for the root).
        """
        parts = [part.strip() for part in value.replace("/", "\\").split("\\")]
        return "\\" + "\\".join(part for part in parts if part)

    @field_validator("server")
    @classmethod
    def _blank_server_is_none(cls, value: str | None) -> str | None:
        """Treat a blank server as unset so autodiscover is used."""
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class ArchiveSettings(BaseSettings):
    """Settings for the local archive file and reports."""

    model_config = SettingsConfigDict(extra="forbid")

    root_dir: Path = Path("./data")
    archive_path_override: Path | None = None
    reports_dir_override: Path | None = None

    root_folder_name: Annotated[str, Field(min_length=1)] = "Public Folders"

    @field_validator("root_dir")
    @classmethod
    def _root_dir_to_absolute(cls, value: Path) -> Path:
        """Resolve the storage root directory to an absolute path."""
        return value.expanduser().resolve()

    @field_validator("archive_path_override", "reports_dir_override")
    @classmethod
    def _paths_to_absolute(cls, value: Path | None) -> Path | None:
        """Resolve optional override paths to absolute paths."""
        return value.expanduser().resolve() if value is not None else None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def archive_path(self) -> Path:
        """Return the resolved archive file path."""
        return (self.archive_path_override or (self.root_dir / "archive.sqlite3")).resolve()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reports_dir(self) -> Path:
        """Return the resolved reports directory."""
        return (self.reports_dir_override or (self.root_dir / "reports")).resolve()


class ExportSettings(BaseSettings):
    """Behaviour of the export walk."""

    model_config = SettingsConfigDict(extra="forbid")

    abort_on_folder_error: bool = False


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(extra="forbid")

    level: Annotated[str, Field(min_length=1)] = "INFO"
    json_logs: bool = True


class AppSettings(BaseSettings):
    """Top-level application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PFM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    exchange: ExchangeSettings | None = None
    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(*, env_file: Path | None) -> AppSettings:
    """Load validated settings from environment and optional file.

    Args:
        env_file: Optional .env file path.

    Returns:
        Validated AppSettings instance.
    """
    if env_file is None:
        return AppSettings()
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]
