from __future__ import annotations

from typing import Mapping, Protocol

from .types import DeliveryResult


class HttpTransport(Protocol):
    async def post(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str],
    ) -> DeliveryResult:
        ...


class DeliveryPort(Protocol):
    async def send_batch(self, text: str) -> DeliveryResult:
        ...

    async def send_file(
        self,
        name: str,
        data: bytes,
        content_type: str = "text/markdown",
    ) -> DeliveryResult:
        ...


class BufferSink(Protocol):
    async def add(self, text: str) -> None:
        ...
