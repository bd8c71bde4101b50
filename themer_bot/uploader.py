"""Deliver a result archive back to the Slack conversation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from .errors import UploadError
from .slack_client import SlackApiError, SlackClient, SlackRequestError

logger = logging.getLogger(__name__)


class Uploader:
    """Single-attempt upload through ``SlackClient.attach_file_to``."""

    def __init__(self, client: SlackClient) -> None:
        self.client = client

    def upload(self, channel: str, file_path: Path, display_name: str) -> Dict[str, Any]:
        try:
            response = self.client.attach_file_to(channel, file_path, display_name)
        except SlackRequestError as exc:
            raise UploadError(
                f"Upload to {channel} failed: {exc}", status_code=exc.status_code or None
            ) from exc
        except SlackApiError as exc:
            raise UploadError(f"Upload to {channel} rejected: {exc.error}") from exc
        except OSError as exc:
            raise UploadError(f"Unable to read {file_path}: {exc}") from exc

        logger.info("Uploaded '%s' to channel %s", display_name, channel)
        return response

    @staticmethod
    def file_id(response: Dict[str, Any]) -> str | None:
        """Id of the shared file from a ``files.completeUploadExternal`` response."""
        files = response.get("files") or []
        return files[0].get("id") if files else None
