"""Typed containers shared across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

EXTRACTED_DIRNAME = "downloaded_template"
DEFAULT_RESULT_FILENAME = "result.zip"


@dataclass(frozen=True)
class Attachment:
    """A Slack file shared in a message, plus the channel it was posted to."""

    id: str
    url_private: str
    filetype: str
    channel: str
    name: Optional[str] = None

    @classmethod
    def from_slack(cls, raw: dict[str, Any], channel: str) -> "Attachment":
        return cls(
            id=raw.get("id", ""),
            url_private=raw.get("url_private_download") or raw.get("url_private", ""),
            filetype=(raw.get("filetype") or "").lower(),
            channel=channel,
            name=raw.get("name"),
        )


@dataclass
class MessageEvent:
    """Essential fields of an incoming Slack ``message`` event."""

    channel: str
    files: list[Attachment]
    user: Optional[str] = None
    ts: Optional[str] = None
    bot_id: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MessageEvent":
        """Accept either a bare event or an Events API envelope (``{"event": {...}}``)."""
        event = payload.get("event", payload)
        channel = event.get("channel", "")
        return cls(
            channel=channel,
            files=[Attachment.from_slack(raw, channel) for raw in event.get("files") or []],
            user=event.get("user"),
            ts=event.get("ts"),
            bot_id=event.get("bot_id"),
            raw=event,
        )


@dataclass(frozen=True)
class StagingArea:
    """Per-attachment working directory."""

    attachment_id: str
    root: Path
    result_filename: str = DEFAULT_RESULT_FILENAME

    @property
    def extracted(self) -> Path:
        return self.root / EXTRACTED_DIRNAME

    @property
    def result_archive(self) -> Path:
        return self.root / self.result_filename


@dataclass
class TransformResult:
    """Outcome of a successful external transform run."""

    returncode: int
    duration: float
    output_dirs: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class ProcessedAttachment:
    """An attachment whose result archive reached Slack."""

    attachment: Attachment
    checksum: str
    file_id: Optional[str] = None
    skipped: bool = False
