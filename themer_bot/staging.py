"""Lifecycle of the per-attachment staging directories."""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import CleanupError, PipelineError
from .models import DEFAULT_RESULT_FILENAME, StagingArea
from .utils import is_within

logger = logging.getLogger(__name__)


class StagingAreaManager:
    """Creates ``<base_dir>/<attachment id>`` roots and tears them down."""

    def __init__(self, base_dir: Path, result_filename: str = DEFAULT_RESULT_FILENAME) -> None:
        self.base_dir = Path(base_dir)
        self.result_filename = result_filename

    def path_for(self, attachment_id: str) -> Path:
        root = self.base_dir / attachment_id
        if attachment_id in {"", ".", ".."} or root.parent != self.base_dir:
            raise CleanupError(f"Attachment id {attachment_id!r} does not map to a staging directory")
        return root

    def create_for(self, attachment_id: str) -> StagingArea:
        root = self.path_for(attachment_id)
        if root.exists():
            logger.warning("Removing stale staging directory %s", root)
            self.remove_subtree(root)
        try:
            root.mkdir(parents=True)
        except OSError as exc:
            raise CleanupError(f"Unable to create staging directory {root}: {exc}") from exc
        logger.debug("Created staging directory %s", root)
        return StagingArea(attachment_id=attachment_id, root=root, result_filename=self.result_filename)

    def remove_subtree(self, path: Path) -> None:
        """Recursively delete ``path``; it has to live inside ``base_dir``."""
        path = Path(path)
        if not is_within(path, self.base_dir) or path.resolve() == self.base_dir.resolve():
            raise CleanupError(f"Refusing to remove {path}: outside of {self.base_dir}")
        if not path.exists():
            return
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as exc:
            raise CleanupError(f"Unable to remove {path}: {exc}") from exc

    def teardown(self, attachment_id: str) -> None:
        self.remove_subtree(self.path_for(attachment_id))
        logger.debug("Removed staging directory for %s", attachment_id)

    @contextmanager
    def staged(self, attachment_id: str) -> Iterator[StagingArea]:
        """Create the staging area and tear it down on every exit path.

        If the body already failed, a teardown failure is logged and the
        original error is the one that propagates.
        """
        area = self.create_for(attachment_id)
        try:
            yield area
        except BaseException:
            try:
                self.teardown(attachment_id)
            except PipelineError as cleanup_exc:
                logger.error("Teardown after failure left %s behind: %s", area.root, cleanup_exc)
            raise
        self.teardown(attachment_id)
