from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

LOG_TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"


class Room(enum.Enum):
    FANTASY = "fantasy"
    SPACE = "space"

    @property
    def tag(self) -> str:
        return self.name

    @property
    def label(self) -> str:
        return self.value.capitalize()


DEFAULT_ROOM = Room.SPACE


@dataclass(frozen=True)
class LogLine:
    timestamp: datetime
    author: str
    message: str

    def render(self) -> str:
        stamp = self.timestamp.strftime(LOG_TIMESTAMP_FORMAT)
        return f"{stamp}\n[{self.author}]: {self.message}"

    def to_file_text(self) -> str:
        return self.render() + "\n"

    def to_buffer_text(self, room: Room) -> str:
        return f"(**{room.label}**) {self.render()}"


@dataclass(frozen=True)
class UploadLedgerEntry:
    log_name: str
    uploaded: bool
    upload_time: datetime


@dataclass(frozen=True)
class DeliveryResult:
    status: int
    body: str = ""
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.skipped and 200 <= self.status < 300

    @classmethod
    def skipped_result(cls) -> "DeliveryResult":
        return cls(status=0, body="", skipped=True)


@dataclass(frozen=True)
class ChatEvent:
    player_id: str
    player_name: str
    message: str
    direct: bool = False


@dataclass(frozen=True)
class JoinEvent:
    player_id: str
    player_name: str


@dataclass(frozen=True)
class LeaveEvent:
    player_id: str
    player_name: str
    disconnected: bool = False


@dataclass(frozen=True)
class PreferenceChangeEvent:
    player_id: str
    player_name: str
    room: Room


@dataclass(frozen=True)
class ClearEvent:
    requested_by: Optional[str] = None


SessionEvent = Union[ChatEvent, JoinEvent, LeaveEvent, PreferenceChangeEvent, ClearEvent]


@dataclass
class EventResult:
    status: str
    room: Optional[Room] = None
