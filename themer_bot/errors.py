"""Exceptions raised by the attachment pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .models import Attachment


class PipelineError(Exception):
    """Base error for a failed pipeline stage.

    ``attachment`` is filled in by the pipeline once the failing attachment is
    known; ``delivered`` lists ids of attachments from the same batch whose
    result reached Slack, the failing one included when only its cleanup failed.
    """

    stage = "pipeline"

    def __init__(self, message: str, *, attachment: Attachment | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.attachment = attachment
        self.delivered: tuple[str, ...] = ()

    def bind(self, attachment: Attachment, delivered: Sequence[str] = ()) -> "PipelineError":
        if self.attachment is None:
            self.attachment = attachment
        if delivered:
            self.delivered = tuple(delivered)
        return self

    @property
    def attachment_id(self) -> str | None:
        return self.attachment.id if self.attachment else None

    def __str__(self) -> str:
        if self.attachment is None:
            return f"[{self.stage}] {self.message}"
        return f"[{self.stage}] attachment {self.attachment.id}: {self.message}"


class ValidationError(PipelineError):
    stage = "validate"


class DownloadError(PipelineError):
    stage = "download"

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ExtractionError(PipelineError):
    stage = "extract"


class TransformError(PipelineError):
    """The external program failed, timed out, was cancelled or could not start."""

    stage = "transform"

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        timed_out: bool = False,
        cancelled: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.returncode = returncode
        self.timed_out = timed_out
        self.cancelled = cancelled


class PackagingError(PipelineError):
    stage = "package"


class UploadError(PipelineError):
    stage = "upload"

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class CleanupError(PipelineError):
    stage = "cleanup"
