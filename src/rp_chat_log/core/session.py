from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from ..persistence.interfaces import UploadLedger
from .normalize import log_file_name
from .ports import BufferSink, DeliveryPort
from .types import DeliveryResult, LogLine, Room

LOG_TRAILER = "-=-=- End of RP Chat Log =-=-"
LOG_CONTENT_TYPE = "text/markdown"


async def upload_log_file(
    path: Path,
    delivery: DeliveryPort,
    ledger: UploadLedger | None,
    *,
    clock: Callable[[], datetime] = datetime.now,
    logger: logging.Logger | None = None,
) -> DeliveryResult:
    """Upload a finished log and record the outcome in the ledger.

    Skipped uploads (no destination configured) are not recorded. A ledger
    write failure propagates as ``PersistenceError``.
    """
    log = logger or logging.getLogger(__name__)
    result = await delivery.send_file(path.name, path.read_bytes(), LOG_CONTENT_TYPE)
    if result.skipped:
        return result
    if result.ok:
        log.info("Uploaded RP chat log %s (%s)", path.name, result.status)
    else:
        log.warning("Upload of RP chat log %s failed: %s %s", path.name, result.status, result.body[:300])
    if ledger is not None:
        ledger.record_upload(path.name, clock(), uploaded=result.ok)
    return result


class ChatLogSession:
    """Open/append/close lifecycle of one room's log file.

    The file is created by the first ``append`` after construction or after a
    ``close``; there is no separate open step. ``close`` writes the trailer
    and, in upload mode, sends the finished file to the collector.
    """

    def __init__(
        self,
        room: Room,
        log_dir: Path,
        buffer: BufferSink,
        *,
        delivery: DeliveryPort | None = None,
        ledger: UploadLedger | None = None,
        upload_files: bool = False,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._room = room
        self._log_dir = Path(log_dir)
        self._buffer = buffer
        self._delivery = delivery
        self._ledger = ledger
        self._upload_files = upload_files
        self._clock = clock or datetime.now
        self._logger = logger or logging.getLogger(__name__)
        self._path: Path | None = None

    @property
    def room(self) -> Room:
        return self._room

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._path is not None

    async def append(self, line: LogLine) -> Path:
        path = self._path
        if path is None:
            path = self._open()
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(line.to_file_text())
        await self._buffer.add(line.to_buffer_text(self._room))
        return path

    async def close(self) -> Path | None:
        path = self._path
        if path is None:
            return None
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(LOG_TRAILER)
        # Unopened again before any await, so a concurrent close is a no-op.
        self._path = None
        self._logger.info("Closed %s RP chat log %s", self._room.label, path.name)

        if self._upload_files and self._delivery is not None:
            await upload_log_file(
                path,
                self._delivery,
                self._ledger,
                clock=self._clock,
                logger=self._logger,
            )
        return path

    def _open(self) -> Path:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        path = self._log_dir / log_file_name(self._room, self._clock())
        if path.exists():
            # Same-second reopen; keep the earlier content.
            self._logger.warning("RP chat log %s already exists, appending", path.name)
        path.touch()
        self._path = path
        self._logger.info("Opened %s RP chat log %s", self._room.label, path.name)
        return path
