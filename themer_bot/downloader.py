"""Fetch attachment bytes from Slack into a temporary file."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from .errors import DownloadError
from .slack_client import SlackClient, SlackRequestError

logger = logging.getLogger(__name__)


class Downloader:
    """Streams a private Slack file URL into a uniquely named temp file."""

    def __init__(
        self,
        transport: SlackClient,
        temp_dir: Path | None = None,
        chunk_size: int = 64 * 1024,
        prefix: str = "devbot-",
    ) -> None:
        self.transport = transport
        self.temp_dir = temp_dir
        self.chunk_size = chunk_size
        self.prefix = prefix

    def download(self, url: str, suffix: str = ".zip") -> Path:
        """Return the path of a new temp file holding the body of ``url``.

        The caller owns the file and must delete it.
        """
        try:
            handle = tempfile.NamedTemporaryFile(
                mode="wb", prefix=self.prefix, suffix=suffix, dir=self.temp_dir, delete=False
            )
        except OSError as exc:
            raise DownloadError(f"Unable to create temporary file: {exc}") from exc

        path = Path(handle.name)
        try:
            with handle:
                size = self.transport.download(url, handle, chunk_size=self.chunk_size)
        except SlackRequestError as exc:
            path.unlink(missing_ok=True)
            raise DownloadError(
                f"Download of {url} failed: {exc}", status_code=exc.status_code or None
            ) from exc
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise DownloadError(f"Unable to write {path}: {exc}") from exc

        logger.debug("Downloaded %s bytes from %s into %s", size, url, path)
        return path
