from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from ..persistence.interfaces import PreferenceStore, UploadLedger
from .delivery import DeliveryClient
from .flush import FlushScheduler
from .normalize import is_log_file_name
from .session import LOG_TRAILER, ChatLogSession, upload_log_file
from .types import (
    DEFAULT_ROOM,
    ChatEvent,
    ClearEvent,
    EventResult,
    JoinEvent,
    LeaveEvent,
    LogLine,
    PreferenceChangeEvent,
    Room,
    SessionEvent,
)


class SessionManager:
    """Routes RP chat events to per-room log sessions.

    Owns one ``ChatLogSession`` per room and the shared ``FlushScheduler``.
    Membership (who is in RP chat) is process state and starts empty; room
    preferences are durable and live in the preference store.
    """

    def __init__(
        self,
        preferences: PreferenceStore,
        ledger: UploadLedger,
        delivery: DeliveryClient,
        scheduler: FlushScheduler,
        *,
        log_dir: Path,
        upload_files: bool = False,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._preferences = preferences
        self._ledger = ledger
        self._delivery = delivery
        self._scheduler = scheduler
        self._log_dir = Path(log_dir)
        self._upload_files = upload_files
        self._clock = clock or datetime.now
        self._logger = logger or logging.getLogger(__name__)
        self._members: list[str] = []
        self._sessions: dict[Room, ChatLogSession] = {
            room: ChatLogSession(
                room,
                self._log_dir,
                scheduler,
                delivery=delivery,
                ledger=ledger,
                upload_files=upload_files,
                clock=self._clock,
                logger=self._logger,
            )
            for room in Room
        }

    @property
    def members(self) -> list[str]:
        return list(self._members)

    @property
    def scheduler(self) -> FlushScheduler:
        return self._scheduler

    def session(self, room: Room) -> ChatLogSession:
        return self._sessions[room]

    def members_in(self, room: Room) -> list[str]:
        return [
            player_id
            for player_id in self._members
            if (self._preferences.get(player_id) or DEFAULT_ROOM) is room
        ]

    def room_for(self, player_id: str) -> Room:
        return self._preferences.get(player_id) or DEFAULT_ROOM

    async def start(self, announce: bool = True) -> None:
        self._members = []
        self._preferences.load()
        self._ledger.load()
        if announce:
            await self._announce_startup()

    async def handle(self, event: SessionEvent) -> EventResult:
        if isinstance(event, ChatEvent):
            return await self.on_chat(event)
        if isinstance(event, JoinEvent):
            return await self.on_join(event)
        if isinstance(event, LeaveEvent):
            return await self.on_leave(event)
        if isinstance(event, PreferenceChangeEvent):
            return await self.on_preference_change(event)
        if isinstance(event, ClearEvent):
            return await self.clear()
        raise TypeError(f"unsupported session event: {event!r}")

    async def on_chat(self, event: ChatEvent) -> EventResult:
        if not event.direct and event.player_id not in self._members:
            return EventResult(status="ignored")
        room = self._ensure_preference(event.player_id)
        line = LogLine(timestamp=self._clock(), author=event.player_name, message=event.message)
        await self._sessions[room].append(line)
        return EventResult(status="logged", room=room)

    async def on_join(self, event: JoinEvent) -> EventResult:
        room = self._ensure_preference(event.player_id)
        if event.player_id in self._members:
            return EventResult(status="already_joined", room=room)
        self._members.append(event.player_id)
        self._logger.info("Player %s has joined RP chat (%s room).", event.player_name, room.label)
        return EventResult(status="joined", room=room)

    async def on_leave(self, event: LeaveEvent) -> EventResult:
        if event.player_id not in self._members:
            return EventResult(status="not_member")
        room = self.room_for(event.player_id)
        self._members.remove(event.player_id)
        self._logger.info(
            "Player %s has %s RP chat.",
            event.player_name,
            "disconnected from" if event.disconnected else "left",
        )
        if not self.members_in(room):
            await self._sessions[room].close()
        return EventResult(status="left", room=room)

    async def on_preference_change(self, event: PreferenceChangeEvent) -> EventResult:
        previous = self._preferences.get(event.player_id)
        self._preferences.set(event.player_id, event.room)
        self._logger.info("Player %s moved to the %s room.", event.player_name, event.room.label)
        if (
            previous is not None
            and previous is not event.room
            and event.player_id in self._members
            and not self.members_in(previous)
        ):
            await self._sessions[previous].close()
        return EventResult(status="room_changed", room=event.room)

    async def clear(self) -> EventResult:
        self._members = []
        await self.close_all()
        self._logger.info("RP chat cleared.")
        return EventResult(status="cleared")

    async def close_all(self) -> list[Path]:
        closed: list[Path] = []
        for room in Room:
            path = await self._sessions[room].close()
            if path is not None:
                closed.append(path)
        return closed

    async def shutdown(self) -> None:
        try:
            await self._scheduler.shutdown()
        finally:
            await self.close_all()

    async def upload_pending_logs(self) -> dict[str, bool]:
        """Upload finished logs in the log directory that the ledger lacks.

        Files still open in a session, and files without the closing trailer,
        are left alone. Returns ``{file name: uploaded}`` for each attempt.
        """
        if not self._log_dir.is_dir():
            return {}
        open_paths = {
            session.path.resolve()
            for session in self._sessions.values()
            if session.path is not None
        }
        candidates: dict[str, Path] = {}
        for path in sorted(self._log_dir.iterdir()):
            if not path.is_file() or not is_log_file_name(path.name):
                continue
            if path.resolve() in open_paths:
                continue
            if not _has_trailer(path):
                self._logger.warning("Skipping unterminated RP chat log %s", path.name)
                continue
            candidates[path.name] = path

        outcomes: dict[str, bool] = {}
        for name in self._ledger.not_yet_uploaded(list(candidates)):
            result = await upload_log_file(
                candidates[name],
                self._delivery,
                self._ledger,
                clock=self._clock,
                logger=self._logger,
            )
            if result.skipped:
                break
            outcomes[name] = result.ok
        return outcomes

    def _ensure_preference(self, player_id: str) -> Room:
        room = self._preferences.get(player_id)
        if room is None:
            room = DEFAULT_ROOM
            self._preferences.set(player_id, room)
        return room

    async def _announce_startup(self) -> None:
        if not self._delivery.configured:
            self._logger.warning("No RP chat log webhook URL configured, remote relay disabled.")
            return
        notices = ["\U0001f916 **RP Chat Log** manager initialized! \U0001f916"]
        if self._upload_files and self._delivery.uses_alternate_file_destination:
            notices.append("⚠️ Files will be uploaded to alternate channel ⚠️")
        if self._scheduler.relay_enabled:
            if self._upload_files:
                notices.append(
                    "ℹ️ sendChatAsWellAsFiles is enabled, chat messages will also be sent. ℹ️"
                )
            notices.append(f"⚠️ Chat cache size: {self._scheduler.batch_line_limit} ⚠️")
            minutes = self._scheduler.idle_flush_minutes
            timeout = f"{minutes:g}" if minutes is not None else "off"
            notices.append(f"⚠️ Chat timeout (mins): {timeout} ⚠️")
        for notice in notices:
            await self._delivery.send_batch(notice)


def _has_trailer(path: Path) -> bool:
    trailer = LOG_TRAILER.encode("utf-8")
    size = path.stat().st_size
    if size < len(trailer):
        return False
    with open(path, "rb") as handle:
        handle.seek(size - len(trailer))
        return handle.read() == trailer
