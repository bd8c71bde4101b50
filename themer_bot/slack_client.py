"""Slack Web API helper: authenticated requests, file download and upload."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, Tuple

import requests
from requests import Response

from .config import Settings

logger = logging.getLogger(__name__)


class SlackRequestError(RuntimeError):
    """Transport failure or HTTP status >= 400."""

    def __init__(self, message: str, status_code: int = 0, body: bytes = b"") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SlackApiError(RuntimeError):
    """Slack answered 2xx but with ``"ok": false``."""

    def __init__(self, error: str, payload: Dict[str, Any] | None = None) -> None:
        super().__init__(f"Slack API error: {error}")
        self.error = error
        self.payload = payload or {}


class SlackClient:
    """Thin wrapper around the Slack Web API used by the bot."""

    def __init__(
        self,
        base_url: str,
        oauth_token: str,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.oauth_token = oauth_token
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SlackClient":
        return cls(
            base_url=settings.api_base_url,
            oauth_token=settings.slack_oauth_token,
            timeout=settings.slack_request_timeout,
        )

    def request(self, method: str, endpoint: str, body: bytes = b"") -> Tuple[bytes, int]:
        """Call ``endpoint`` (relative to the API base, or an absolute URL)."""
        url = self._url(endpoint)
        logger.debug("Slack %s %s", method, url)
        headers = {**self._auth_headers(), "Content-Type": "application/json; charset=utf-8"}
        try:
            resp = self.session.request(
                method, url, data=body or None, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("Slack request %s %s failed: %s", method, url, exc)
            raise SlackRequestError(f"{method} {url} failed: {exc}") from exc
        self._check_status(resp)
        return resp.content, resp.status_code

    def get(self, endpoint: str) -> Tuple[bytes, int]:
        return self.request("GET", endpoint)

    def post(self, endpoint: str, body: bytes) -> Tuple[bytes, int]:
        return self.request("POST", endpoint, body)

    def put(self, endpoint: str, body: bytes) -> Tuple[bytes, int]:
        return self.request("PUT", endpoint, body)

    def download(self, url: str, destination: BinaryIO, chunk_size: int = 64 * 1024) -> int:
        """Stream ``url`` into an open binary file and return the byte count.

        Slack serves its HTML sign-in page with status 200 when the token may
        not read the file; that counts as a failed request.
        """
        written = 0
        try:
            with self.session.get(
                self._url(url), headers=self._auth_headers(), stream=True, timeout=self.timeout
            ) as resp:
                self._check_status(resp)
                content_type = (resp.headers.get("Content-Type") or "").lower()
                if content_type.startswith("text/html"):
                    logger.error("Slack download %s returned an HTML page instead of the file", url)
                    raise SlackRequestError(
                        f"GET {url} returned {content_type}; check the token's files:read scope",
                        status_code=resp.status_code,
                    )
                for chunk in resp.iter_content(chunk_size=chunk_size):
                    if chunk:
                        destination.write(chunk)
                        written += len(chunk)
        except requests.RequestException as exc:
            logger.error("Slack download %s failed: %s", url, exc)
            raise SlackRequestError(f"GET {url} failed: {exc}") from exc
        return written

    def attach_file_to(self, channel: str, file_path: Path, display_name: str) -> Dict[str, Any]:
        """Share a local file into ``channel`` through Slack's external upload flow.

        ``files.getUploadURLExternal`` hands out an upload URL and file id, the
        bytes go to that URL, and ``files.completeUploadExternal`` posts the
        file to the channel.
        """
        file_path = Path(file_path)
        size = file_path.stat().st_size
        logger.info("Uploading '%s' (%s bytes) to channel %s", display_name, size, channel)

        ticket = self._post_form(
            "/files.getUploadURLExternal", {"filename": display_name, "length": str(size)}
        )
        upload_url, file_id = ticket.get("upload_url"), ticket.get("file_id")
        if not upload_url or not file_id:
            raise SlackApiError("missing_upload_url", ticket)

        try:
            with file_path.open("rb") as handle:
                resp = self.session.post(
                    upload_url,
                    data=handle,
                    headers={"Content-Type": "application/octet-stream"},
                    timeout=self.timeout,
                )
        except requests.RequestException as exc:
            logger.error("Slack upload of %s failed: %s", display_name, exc)
            raise SlackRequestError(f"POST {upload_url} failed: {exc}") from exc
        self._check_status(resp)

        body = json.dumps(
            {"files": [{"id": file_id, "title": display_name}], "channel_id": channel}
        ).encode("utf-8")
        content, _ = self.post("/files.completeUploadExternal", body)
        return self._parse_api_response(content)

    def send_message(self, channel: str, text: str) -> Dict[str, Any]:
        body = json.dumps({"channel": channel, "text": text}).encode("utf-8")
        content, _ = self.post("/chat.postMessage", body)
        return self._parse_api_response(content)

    def get_conversations_list(self) -> Dict[str, Any]:
        content, _ = self.get("/conversations.list")
        return self._parse_api_response(content)

    def get_users_list(self) -> Dict[str, Any]:
        content, _ = self.get("/users.list")
        return self._parse_api_response(content)

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.oauth_token}"}

    def _post_form(self, endpoint: str, data: Dict[str, str]) -> Dict[str, Any]:
        url = self._url(endpoint)
        logger.debug("Slack POST %s", url)
        try:
            resp = self.session.post(
                url, headers=self._auth_headers(), data=data, timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("Slack request POST %s failed: %s", url, exc)
            raise SlackRequestError(f"POST {url} failed: {exc}") from exc
        self._check_status(resp)
        return self._parse_api_response(resp.content)

    @staticmethod
    def _check_status(resp: Response) -> None:
        if resp.status_code >= 400:
            logger.error("Slack request failed (%s): %s", resp.status_code, resp.text)
            raise SlackRequestError(
                f"Bad status code received: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.content,
            )

    @staticmethod
    def _parse_api_response(content: bytes) -> Dict[str, Any]:
        try:
            payload = json.loads(content or b"{}")
        except ValueError as exc:
            raise SlackApiError("invalid_json") from exc
        if not isinstance(payload, dict):
            raise SlackApiError("invalid_response")
        if not payload.get("ok"):
            raise SlackApiError(payload.get("error") or "unknown_error", payload)
        return payload
