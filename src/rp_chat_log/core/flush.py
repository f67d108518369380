from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .ports import DeliveryPort

Sleeper = Callable[[float], Awaitable[None]]


class FlushScheduler:
    """Shared outbound buffer for relayed chat lines.

    Lines from every room land in one buffer. The buffer is handed to the
    delivery client as a single batch when it reaches ``batch_line_limit``
    lines or ``batch_size_limit`` UTF-8 bytes, or when no line has arrived for
    ``idle_flush_seconds``.

    A line that would take a non-empty buffer past ``batch_size_limit`` first
    sends the buffer on its own.

    When relay is disabled (files-only mode) thresholds are still evaluated
    but no request is made and every line stays buffered, so re-enabling
    relay delivers all of it.
    """

    def __init__(
        self,
        delivery: DeliveryPort,
        *,
        batch_line_limit: int = 10,
        batch_size_limit: int = 1900,
        idle_flush_seconds: float | None = 300.0,
        relay_enabled: bool = True,
        sleep: Sleeper | None = None,
        logger: logging.Logger | None = None,
    ):
        self._delivery = delivery
        self._batch_line_limit = max(int(batch_line_limit), 1)
        self._batch_size_limit = max(int(batch_size_limit), 1)
        self._idle_flush_seconds = idle_flush_seconds if idle_flush_seconds and idle_flush_seconds > 0 else None
        self._relay_enabled = relay_enabled
        self._sleep = sleep or asyncio.sleep
        self._logger = logger or logging.getLogger(__name__)
        self._buffer: list[str] = []
        self._idle_task: asyncio.Task | None = None
        self._send_lock = asyncio.Lock()

    @property
    def pending(self) -> list[str]:
        return list(self._buffer)

    @property
    def timer_armed(self) -> bool:
        return self._idle_task is not None and not self._idle_task.done()

    @property
    def batch_line_limit(self) -> int:
        return self._batch_line_limit

    @property
    def idle_flush_minutes(self) -> float | None:
        if self._idle_flush_seconds is None:
            return None
        return self._idle_flush_seconds / 60.0

    @property
    def relay_enabled(self) -> bool:
        return self._relay_enabled

    @relay_enabled.setter
    def relay_enabled(self, value: bool) -> None:
        self._relay_enabled = bool(value)

    async def add(self, text: str) -> None:
        batches: list[list[str] | None] = []
        if self._buffer and self._joined_size(self._buffer + [text]) > self._batch_size_limit:
            # Batches stay within the size cap.
            batches.append(self._take_batch())
        self._buffer.append(text)
        if self._threshold_reached():
            self.cancel_idle_timer()
            batches.append(self._take_batch())
        else:
            self._arm_idle_timer()
        await self._send(batches)

    async def flush(self) -> bool:
        """Send the buffered lines as one batch. Returns whether a send was issued."""
        batch = self._take_batch()
        if batch is None:
            return False
        await self._send([batch])
        return True

    async def shutdown(self) -> None:
        self.cancel_idle_timer()
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        if not self._relay_enabled:
            self._logger.debug("Relay disabled, discarding %s buffered lines at shutdown", len(batch))
            return
        await self._send([batch])

    def cancel_idle_timer(self) -> None:
        task = self._idle_task
        self._idle_task = None
        if task is not None and not task.done():
            task.cancel()

    def _take_batch(self) -> list[str] | None:
        if not self._buffer:
            return None
        if not self._relay_enabled:
            self._logger.debug("Relay disabled, holding %s buffered lines", len(self._buffer))
            return None
        # Swap before sending: lines added while the request is in flight
        # start the next batch.
        batch, self._buffer = self._buffer, []
        return batch

    async def _send(self, batches: list[list[str] | None]) -> None:
        pending = [batch for batch in batches if batch]
        if not pending:
            return
        # Batches go out in the order they left the buffer.
        async with self._send_lock:
            for batch in pending:
                self._logger.debug("Flushing %s buffered RP chat lines", len(batch))
                await self._delivery.send_batch("\n".join(batch))

    def _threshold_reached(self) -> bool:
        if len(self._buffer) >= self._batch_line_limit:
            return True
        return self._joined_size(self._buffer) >= self._batch_size_limit

    @staticmethod
    def _joined_size(lines: list[str]) -> int:
        return len("\n".join(lines).encode("utf-8"))

    def _arm_idle_timer(self) -> None:
        self.cancel_idle_timer()
        if self._idle_flush_seconds is None:
            return
        self._idle_task = asyncio.create_task(self._idle_flush(self._idle_flush_seconds))

    async def _idle_flush(self, delay_seconds: float) -> None:
        try:
            await self._sleep(delay_seconds)
        except asyncio.CancelledError:
            return
        # Detach first so a re-arm during the send cannot cancel it.
        if self._idle_task is asyncio.current_task():
            self._idle_task = None
        try:
            await self.flush()
        except Exception:
            self._logger.exception("Idle flush of RP chat buffer failed")
