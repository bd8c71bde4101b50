"""Sequence download → extract → transform → repackage → upload for attachments."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .archive import ArchiveKind, codec_for
from .delivery_log import DeliveryLog
from .downloader import Downloader
from .errors import PipelineError, ValidationError
from .models import Attachment, ProcessedAttachment
from .staging import StagingAreaManager
from .transform import TransformInvoker
from .uploader import Uploader
from .utils import sha256_file
from .validator import AttachmentValidator

logger = logging.getLogger(__name__)


class AttachmentState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    DOWNLOADED = "downloaded"
    EXTRACTED = "extracted"
    TRANSFORMED = "transformed"
    REPACKAGED = "repackaged"
    UPLOADED = "uploaded"
    CLEANED_UP = "cleaned_up"
    SKIPPED = "skipped"
    FAILED = "failed"


class AttachmentPipeline:
    """Process the attachments of a message one after another.

    All collaborators are passed in; the pipeline holds no global state other
    than ``states``, the last state reached by each attachment of the most
    recent call.
    """

    def __init__(
        self,
        *,
        validator: AttachmentValidator,
        downloader: Downloader,
        staging: StagingAreaManager,
        transform: TransformInvoker,
        uploader: Uploader,
        delivery_log: Optional[DeliveryLog] = None,
    ) -> None:
        self.validator = validator
        self.downloader = downloader
        self.staging = staging
        self.transform = transform
        self.uploader = uploader
        self.delivery_log = delivery_log
        self.states: Dict[str, AttachmentState] = {}

    def process_message(
        self, attachments: Sequence[Attachment], cancel: threading.Event | None = None
    ) -> List[ProcessedAttachment]:
        """Validate the whole batch, then run each attachment; stop at the first failure.

        Uploads that happened before a failure stay in the conversation; their
        ids are reported on the raised error as ``delivered``. ``states`` only
        describes the most recent call.
        """
        self.states.clear()
        logger.debug("Files received: %s", [a.id for a in attachments])
        for attachment in attachments:
            self._advance(attachment, AttachmentState.RECEIVED)
        invalid = self.validator.first_invalid(attachments)
        if invalid is not None:
            attachment, error = invalid
            self._advance(attachment, AttachmentState.FAILED)
            raise error

        results: List[ProcessedAttachment] = []
        delivered: List[str] = []
        for attachment in attachments:
            try:
                result = self._run(attachment, cancel, delivered)
            except PipelineError as exc:
                exc.bind(attachment, delivered)
                logger.error(
                    "Stopped batch at %s (%s delivered): %s",
                    attachment.id,
                    len(delivered),
                    exc,
                )
                raise
            results.append(result)
        return results

    def process_attachment(
        self, attachment: Attachment, cancel: threading.Event | None = None
    ) -> ProcessedAttachment:
        self.states.clear()
        self._advance(attachment, AttachmentState.RECEIVED)
        try:
            self.validator.validate([attachment])
        except ValidationError:
            self._advance(attachment, AttachmentState.FAILED)
            raise
        delivered: List[str] = []
        try:
            return self._run(attachment, cancel, delivered)
        except PipelineError as exc:
            raise exc.bind(attachment, delivered)

    def _run(
        self, attachment: Attachment, cancel: threading.Event | None, delivered: List[str]
    ) -> ProcessedAttachment:
        """Run one attachment; its id goes into ``delivered`` as soon as Slack accepts the upload."""
        self._advance(attachment, AttachmentState.VALIDATED)
        if self.delivery_log is not None and self.delivery_log.seen(
            attachment.channel, attachment.id
        ):
            logger.info(
                "Attachment %s already delivered to %s; skipping", attachment.id, attachment.channel
            )
            self._advance(attachment, AttachmentState.SKIPPED)
            return ProcessedAttachment(attachment=attachment, checksum="", skipped=True)

        kind = ArchiveKind.from_filetype(attachment.filetype)
        if kind is None:
            raise ValidationError(f"Wrong file type {attachment.filetype!r}", attachment=attachment)
        codec = codec_for(kind)

        logger.debug("Start processing file %s from %s", attachment.id, attachment.url_private)
        uploaded = False
        try:
            with self.staging.staged(attachment.id) as area:
                archive_path = self.downloader.download(attachment.url_private, suffix=codec.suffix)
                self._advance(attachment, AttachmentState.DOWNLOADED)
                try:
                    codec.extract(archive_path, area.extracted)
                finally:
                    archive_path.unlink(missing_ok=True)
                self._advance(attachment, AttachmentState.EXTRACTED)

                self.transform.run(area.extracted, cancel=cancel)
                self._advance(attachment, AttachmentState.TRANSFORMED)

                # the downloaded payload never goes back out
                self.staging.remove_subtree(area.extracted)
                codec.build(area.root, area.result_archive)
                checksum = sha256_file(area.result_archive)
                self._advance(attachment, AttachmentState.REPACKAGED)

                response = self.uploader.upload(
                    attachment.channel, area.result_archive, area.result_filename
                )
                uploaded = True
                delivered.append(attachment.id)
                self._advance(attachment, AttachmentState.UPLOADED)
                file_id = Uploader.file_id(response)
                if self.delivery_log is not None:
                    self.delivery_log.record(
                        channel=attachment.channel,
                        attachment_id=attachment.id,
                        checksum=checksum,
                        slack_file_id=file_id,
                    )
        except PipelineError as exc:
            if uploaded:
                # delivered, but the staging directory could not be removed
                logger.error("Attachment %s uploaded but not cleaned up: %s", attachment.id, exc)
            else:
                self._advance(attachment, AttachmentState.FAILED)
            raise exc.bind(attachment)
        except BaseException:
            if not uploaded:
                self._advance(attachment, AttachmentState.FAILED)
            raise
        self._advance(attachment, AttachmentState.CLEANED_UP)
        return ProcessedAttachment(attachment=attachment, checksum=checksum, file_id=file_id)

    def _advance(self, attachment: Attachment, state: AttachmentState) -> None:
        self.states[attachment.id] = state
        logger.debug("Attachment %s -> %s", attachment.id, state.value)
