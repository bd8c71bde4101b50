"""Up-front check that every attachment in a message can be processed."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Iterable, Sequence, Tuple

from .archive import ArchiveKind
from .errors import ValidationError
from .models import Attachment

logger = logging.getLogger(__name__)


def _is_safe_id(attachment_id: str) -> bool:
    if not attachment_id or attachment_id in {".", ".."}:
        return False
    return PurePath(attachment_id).name == attachment_id and "\\" not in attachment_id


class AttachmentValidator:
    """All-or-nothing gate over the attachments of one message."""

    def __init__(self, supported: Iterable[ArchiveKind] = tuple(ArchiveKind)) -> None:
        self.supported = frozenset(supported)

    def is_supported(self, attachment: Attachment) -> bool:
        return ArchiveKind.from_filetype(attachment.filetype) in self.supported

    def first_invalid(
        self, attachments: Sequence[Attachment]
    ) -> Tuple[Attachment, ValidationError] | None:
        """Return the first attachment that cannot be processed, with the reason."""
        for attachment in attachments:
            if not _is_safe_id(attachment.id):
                error = ValidationError(f"Invalid attachment id {attachment.id!r}")
            elif not self.is_supported(attachment):
                error = ValidationError(f"Wrong file type {attachment.filetype!r}")
            elif not attachment.url_private:
                error = ValidationError("Attachment has no download URL")
            else:
                continue
            error.bind(attachment)
            logger.warning("Rejected attachment %s: %s", attachment.id, error.message)
            return attachment, error
        return None

    def validate(self, attachments: Sequence[Attachment]) -> None:
        invalid = self.first_invalid(attachments)
        if invalid is not None:
            raise invalid[1]
