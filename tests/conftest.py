from __future__ import annotations

import io
import sys
import textwrap
import zipfile
from pathlib import Path

import pytest

from themer_bot.downloader import Downloader
from themer_bot.pipeline import AttachmentPipeline
from themer_bot.slack_client import SlackApiError, SlackRequestError
from themer_bot.staging import StagingAreaManager
from themer_bot.transform import TransformInvoker
from themer_bot.uploader import Uploader
from themer_bot.validator import AttachmentValidator


class FakeTransport:
    """Serves canned bodies by URL; anything else is a 404."""

    def __init__(self, payloads: dict[str, bytes]) -> None:
        self.payloads = payloads
        self.calls: list[str] = []

    def download(self, url, destination, chunk_size=65536) -> int:
        self.calls.append(url)
        if url not in self.payloads:
            raise SlackRequestError("Bad status code received: 404", status_code=404)
        data = self.payloads[url]
        for start in range(0, len(data), chunk_size):
            destination.write(data[start : start + chunk_size])
        return len(data)


class FakeSlack:
    """Records uploads (with the archive listing, read at upload time) and messages."""

    def __init__(self, reject_upload_numbers: tuple[int, ...] = ()) -> None:
        self.reject_upload_numbers = reject_upload_numbers
        self.uploads: list[dict] = []
        self.messages: list[tuple[str, str]] = []

    def attach_file_to(self, channel, file_path, display_name):
        with zipfile.ZipFile(file_path) as archive:
            names = sorted(archive.namelist())
            contents = {n: archive.read(n) for n in names if not n.endswith("/")}
        self.uploads.append(
            {"channel": channel, "path": Path(file_path), "display_name": display_name, "names": names, "contents": contents}
        )
        if len(self.uploads) in self.reject_upload_numbers:
            raise SlackApiError("not_in_channel")
        return {"ok": True, "files": [{"id": f"FUP{len(self.uploads)}", "title": display_name}]}

    def send_message(self, channel, text):
        self.messages.append((channel, text))
        return {"ok": True}


@pytest.fixture
def make_zip_bytes():
    def _make(entries: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for name, data in entries.items():
                archive.writestr(name, data)
        return buffer.getvalue()

    return _make


@pytest.fixture
def script_command(tmp_path):
    """Write a small Python program and return the argv prefix that runs it."""

    def _write(body: str, name: str = "tool.py") -> list[str]:
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return [sys.executable, str(script)]

    return _write


@pytest.fixture
def themer_command(script_command):
    """Stand-in compiler: copies the input into ``preview`` and ``template`` siblings."""
    return script_command(
        """
        import shutil
        import sys
        from pathlib import Path

        path = Path(sys.argv[1].split("=", 1)[1])
        for name in ("preview", "template"):
            shutil.copytree(path, path.parent / name)
        """,
        name="themer.py",
    )


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def build_pipeline(staging_dir):
    def _build(transport, slack, command, delivery_log=None, timeout=30.0) -> AttachmentPipeline:
        return AttachmentPipeline(
            validator=AttachmentValidator(),
            downloader=Downloader(transport, temp_dir=staging_dir, chunk_size=7),
            staging=StagingAreaManager(staging_dir),
            transform=TransformInvoker(command, timeout=timeout),
            uploader=Uploader(slack),
            delivery_log=delivery_log,
        )

    return _build


@pytest.fixture
def fake_transport_cls():
    return FakeTransport


@pytest.fixture
def fake_slack_cls():
    return FakeSlack
