"""Configuration management for the Slack template bot."""

from __future__ import annotations

import re
import shlex
import tempfile
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv
from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .archive import ArchiveKind
from .models import DEFAULT_RESULT_FILENAME

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()


def _split_list(value: str | Sequence[str] | None, coerce_lower: bool = True) -> list[str]:
    """Turn delimiter-separated env strings into cleaned lists."""
    if value is None:
        return []
    if isinstance(value, str):
        items = re.split(r"[;,]", value)
    else:
        items = list(value)
    cleaned: list[str] = []
    for item in items:
        trimmed = item.strip()
        if not trimmed:
            continue
        cleaned.append(trimmed.lower() if coerce_lower else trimmed)
    return cleaned


class Settings(BaseSettings):
    """App configuration derived from environment variables."""

    slack_base_url: HttpUrl = Field("https://slack.com/api", alias="SLACK_BASE_URL")
    slack_oauth_token: str = Field(..., alias="SLACK_OAUTH_TOKEN")
    slack_request_timeout: float = Field(5.0, alias="SLACK_REQUEST_TIMEOUT")

    supported_file_types_raw: str = Field("zip", alias="SUPPORTED_FILE_TYPES")

    transform_command: str = Field("./scripts/themer/themer.phar", alias="TRANSFORM_COMMAND")
    transform_timeout: float | None = Field(600.0, alias="TRANSFORM_TIMEOUT")

    staging_dir: Path = Field(Path(tempfile.gettempdir()), alias="STAGING_DIR")
    result_filename: str = Field(DEFAULT_RESULT_FILENAME, alias="RESULT_FILENAME")
    download_chunk_size: int = Field(64 * 1024, alias="DOWNLOAD_CHUNK_SIZE")

    delivery_log_db: Path | None = Field(
        Path("data/delivered_attachments.db"), alias="DELIVERY_LOG_DB"
    )
    report_failures: bool = Field(True, alias="REPORT_FAILURES")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("transform_timeout", "delivery_log_db", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("supported_file_types_raw")
    @classmethod
    def _known_file_types(cls, value: str) -> str:
        for name in _split_list(value):
            if ArchiveKind.from_filetype(name) is None:
                raise ValueError(f"Unsupported archive type in SUPPORTED_FILE_TYPES: {name}")
        return value

    @field_validator("result_filename")
    @classmethod
    def _plain_filename(cls, value: str) -> str:
        if not value or Path(value).name != value:
            raise ValueError("RESULT_FILENAME must be a bare file name.")
        return value

    @property
    def api_base_url(self) -> str:
        return str(self.slack_base_url).rstrip("/")

    @property
    def supported_kinds(self) -> list[ArchiveKind]:
        names = _split_list(self.supported_file_types_raw)
        kinds = list(dict.fromkeys(ArchiveKind(name) for name in names))
        return kinds or [ArchiveKind.ZIP]

    @property
    def transform_argv(self) -> list[str]:
        """The transform command split into argv, without the ``--path`` argument."""
        return shlex.split(self.transform_command)
