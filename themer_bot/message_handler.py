"""Turn incoming Slack message events into pipeline runs."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .errors import PipelineError
from .models import MessageEvent
from .pipeline import AttachmentPipeline
from .slack_client import SlackApiError, SlackClient, SlackRequestError

logger = logging.getLogger(__name__)


class AttachmentMessageHandler:
    """Run the pipeline for a message and tell the channel when it fails."""

    def __init__(
        self,
        pipeline: AttachmentPipeline,
        slack_client: SlackClient,
        report_failures: bool = True,
    ) -> None:
        self.pipeline = pipeline
        self.slack_client = slack_client
        self.report_failures = report_failures

    def handle(self, payload: Dict[str, Any]) -> Optional[PipelineError]:
        """Process one event payload; return the pipeline error, if any."""
        message = MessageEvent.from_payload(payload)
        if message.bot_id:
            logger.debug("Ignoring bot message %s", message.ts)
            return None
        if not message.files:
            logger.debug("Message %s carries no files", message.ts)
            return None

        try:
            results = self.pipeline.process_message(message.files)
        except PipelineError as exc:
            self._report(message.channel, exc)
            return exc

        uploaded = sum(1 for result in results if not result.skipped)
        logger.info(
            "Message %s done: uploaded=%s skipped=%s",
            message.ts,
            uploaded,
            len(results) - uploaded,
        )
        return None

    def _report(self, channel: str, error: PipelineError) -> None:
        if not self.report_failures or not channel:
            return
        name = error.attachment.name or error.attachment.id if error.attachment else "attachment"
        text = f"Failed to process `{name}` ({error.stage}): {error.message}"
        if error.delivered:
            text += f"\nAlready delivered: {', '.join(error.delivered)}"
        try:
            self.slack_client.send_message(channel, text)
        except (SlackRequestError, SlackApiError) as exc:
            logger.error("Unable to report failure to %s: %s", channel, exc)
