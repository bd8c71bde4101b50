"""Run the external template compiler against an extracted attachment."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import Sequence

from .errors import TransformError
from .models import TransformResult

logger = logging.getLogger(__name__)


class TransformInvoker:
    """Spawn ``<command> --path=<dir>`` and wait for it.

    The child inherits stdout/stderr so its output lands in the bot's log
    stream. ``timeout`` (seconds, ``None`` for no limit) and an optional
    ``cancel`` event bound the wait; either one terminates the child and
    raises :class:`TransformError`.
    """

    POLL_INTERVAL = 0.2
    KILL_GRACE = 5.0

    def __init__(self, command: Sequence[str], timeout: float | None = None) -> None:
        if not command:
            raise ValueError("Transform command must not be empty")
        self.command = list(command)
        self.timeout = timeout

    def argv(self, path: Path) -> list[str]:
        return [*self.command, f"--path={path}"]

    def run(self, path: Path, cancel: threading.Event | None = None) -> TransformResult:
        argv = self.argv(path)
        logger.debug("Starting transform: %s", argv)
        started = time.monotonic()
        try:
            process = subprocess.Popen(argv)
        except OSError as exc:
            raise TransformError(f"Unable to start {self.command[0]}: {exc}") from exc

        deadline = started + self.timeout if self.timeout is not None else None
        while True:
            try:
                returncode = process.wait(timeout=self.POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                pass
            if cancel is not None and cancel.is_set():
                self._stop(process)
                raise TransformError("Transform cancelled", cancelled=True)
            if deadline is not None and time.monotonic() >= deadline:
                self._stop(process)
                raise TransformError(
                    f"Transform did not finish within {self.timeout:g}s", timed_out=True
                )

        duration = time.monotonic() - started
        if returncode != 0:
            logger.error("Transform exited with status %s after %.1fs", returncode, duration)
            raise TransformError(f"Transform exited with status {returncode}", returncode=returncode)

        outputs = sorted(
            p for p in Path(path).parent.iterdir() if p.is_dir() and p != Path(path)
        )
        logger.debug("Transform finished in %.1fs, outputs: %s", duration, [p.name for p in outputs])
        return TransformResult(returncode=returncode, duration=duration, output_dirs=outputs)

    def _stop(self, process: subprocess.Popen) -> None:
        logger.warning("Terminating transform process %s", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self.KILL_GRACE)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
