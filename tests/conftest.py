from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from rp_chat_log.core.types import DeliveryResult
from rp_chat_log.persistence.sqlalchemy.db import build_engine, build_session_factory, create_schema
from rp_chat_log.persistence.sqlalchemy.uow import SQLAlchemyUnitOfWork


class StepClock:
    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class StubDelivery:
    def __init__(self, status: int = 204):
        self.status = status
        self.batches: list[str] = []
        self.files: list[tuple[str, bytes, str]] = []

    async def send_batch(self, text: str) -> DeliveryResult:
        self.batches.append(text)
        return DeliveryResult(status=self.status)

    async def send_file(self, name: str, data: bytes, content_type: str = "text/markdown") -> DeliveryResult:
        self.files.append((name, data, content_type))
        return DeliveryResult(status=200 if self.status < 300 else self.status, body="{}")


class StubTransport:
    def __init__(self, status: int = 204, body: str = "", error: Exception | None = None):
        self.status = status
        self.body = body
        self.error = error
        self.requests: list[tuple[str, bytes, dict[str, str]]] = []

    async def post(self, url, body, headers) -> DeliveryResult:
        self.requests.append((url, body, dict(headers)))
        if self.error is not None:
            raise self.error
        return DeliveryResult(status=self.status, body=self.body)


class ManualSleep:
    """Sleep replacement whose waits finish only when the test fires them."""

    def __init__(self):
        self.waits: list[tuple[float, asyncio.Future]] = []

    async def __call__(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self.waits.append((delay, future))
        await future

    def fire_latest(self) -> None:
        _, future = self.waits[-1]
        future.set_result(None)


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture()
def clock():
    return StepClock(datetime(2026, 3, 14, 9, 26, 53))


@pytest.fixture()
def log_dir(tmp_path):
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    return build_session_factory(engine)


@pytest.fixture()
def uow_factory(session_factory):
    def _factory():
        return SQLAlchemyUnitOfWork(session_factory)

    return _factory
