from __future__ import annotations

import asyncio
import http.client
import json
import logging
import secrets
from typing import Mapping
from urllib import error as urllib_error
from urllib import request as urllib_request

from .ports import HttpTransport
from .types import DeliveryResult

USER_AGENT = "rp-chat-log/0.1"
UPLOAD_CAPTION = "\U0001f4be Uploaded RP Log : {name}"

_CRLF = b"\r\n"


def new_boundary() -> str:
    return "----rpchatlog-" + secrets.token_hex(12)


def encode_multipart(
    file_name: str,
    data: bytes,
    content_type: str | None,
    payload: Mapping[str, object],
    *,
    boundary: str | None = None,
) -> tuple[bytes, str]:
    """Encode a webhook upload as ``multipart/form-data``.

    Two parts are written: ``payload_json`` carrying the message JSON and
    ``files[0]`` carrying the raw file bytes. Returns the body and the value
    for the ``Content-Type`` header.
    """
    boundary = boundary or new_boundary()
    marker = f"--{boundary}".encode("utf-8")
    payload_bytes = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    file_type = content_type or "application/octet-stream"

    body = b"".join(
        [
            marker,
            _CRLF,
            b'Content-Disposition: form-data; name="payload_json"',
            _CRLF,
            b"Content-Type: application/json",
            _CRLF,
            _CRLF,
            payload_bytes,
            _CRLF,
            marker,
            _CRLF,
            f'Content-Disposition: form-data; name="files[0]"; filename="{file_name}"'.encode("utf-8"),
            _CRLF,
            f"Content-Type: {file_type}".encode("utf-8"),
            _CRLF,
            _CRLF,
            data,
            _CRLF,
            marker,
            b"--",
            _CRLF,
        ]
    )
    return body, f"multipart/form-data; boundary={boundary}"


class UrllibTransport:
    """POST through ``urllib.request`` on a worker thread.

    Non-2xx responses come back as results; connection failures raise
    ``OSError`` (``URLError`` included), malformed responses raise
    ``http.client.HTTPException``.
    """

    def __init__(self, timeout_seconds: float = 10.0):
        self._timeout_seconds = timeout_seconds

    async def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> DeliveryResult:
        return await asyncio.to_thread(self._post_sync, url, body, dict(headers))

    def _post_sync(self, url: str, body: bytes, headers: dict[str, str]) -> DeliveryResult:
        request = urllib_request.Request(url, data=body, headers=headers, method="POST")
        try:
            with urllib_request.urlopen(request, timeout=self._timeout_seconds) as response:  # noqa: S310
                status = int(getattr(response, "status", 200))
                payload = response.read().decode("utf-8", errors="replace")
        except urllib_error.HTTPError as exc:
            payload = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
            return DeliveryResult(status=int(exc.code), body=payload)
        return DeliveryResult(status=status, body=payload)


class DeliveryClient:
    """Thin webhook transport for chat batches and finished log files."""

    def __init__(
        self,
        webhook_url: str | None,
        file_webhook_url: str | None = None,
        *,
        transport: HttpTransport | None = None,
        logger: logging.Logger | None = None,
    ):
        self._webhook_url = webhook_url
        self._file_webhook_url = file_webhook_url
        self._transport = transport or UrllibTransport()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def configured(self) -> bool:
        return bool(self._webhook_url)

    @property
    def file_destination(self) -> str | None:
        return self._file_webhook_url or self._webhook_url

    @property
    def uses_alternate_file_destination(self) -> bool:
        return bool(self._file_webhook_url) and self._file_webhook_url != self._webhook_url

    async def send_batch(self, text: str) -> DeliveryResult:
        if not self._webhook_url:
            self._logger.warning("No RP chat log webhook URL configured, skipping webhook message.")
            return DeliveryResult.skipped_result()

        body = json.dumps({"content": text}, ensure_ascii=False).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
            "User-Agent": USER_AGENT,
        }
        result = await self._post(self._webhook_url, body, headers)
        if result.status == 204:
            self._logger.info("Webhook sent (204 No Content).")
        elif result.ok:
            self._logger.info("Webhook sent: %s %s", result.status, result.body[:300])
        else:
            self._logger.warning("Webhook failed: %s %s", result.status, result.body[:300])
        return result

    async def send_file(
        self,
        name: str,
        data: bytes,
        content_type: str = "text/markdown",
    ) -> DeliveryResult:
        url = self.file_destination
        if not url:
            self._logger.warning("No RP chat log webhook URL configured, skipping log upload.")
            return DeliveryResult.skipped_result()

        body, multipart_type = encode_multipart(
            name,
            data,
            content_type,
            {"content": UPLOAD_CAPTION.format(name=name)},
        )
        headers = {
            "Content-Type": multipart_type,
            "Content-Length": str(len(body)),
            "User-Agent": USER_AGENT,
        }
        result = await self._post(url, body, headers)
        if result.ok:
            self._logger.info("Uploaded %s: %s", name, result.status)
        else:
            self._logger.warning("Upload of %s failed: %s %s", name, result.status, result.body[:300])
        return result

    async def _post(self, url: str, body: bytes, headers: Mapping[str, str]) -> DeliveryResult:
        try:
            return await self._transport.post(url, body, headers)
        except (OSError, ValueError, http.client.HTTPException) as exc:
            self._logger.warning("Webhook request to collector failed: %s", exc)
            return DeliveryResult(status=0, body=str(exc))
