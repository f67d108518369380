from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from .types import Room

LOG_FILE_PATTERN = re.compile(
    r"^(SPACE|FANTASY)-RPChatLog-\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}\.md$"
)

# Rooms were persisted as enum ordinals by earlier releases.
_LEGACY_ROOM_ORDINALS = {0: Room.FANTASY, 1: Room.SPACE}

_ROOM_ALIASES = {
    "fantasy": Room.FANTASY,
    "f": Room.FANTASY,
    "space": Room.SPACE,
    "s": Room.SPACE,
}


def parse_room(value: Any) -> Room:
    if isinstance(value, Room):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return _LEGACY_ROOM_ORDINALS[value]
        except KeyError:
            raise ValueError(f"unknown room ordinal: {value!r}") from None
    key = str(value or "").strip().lower()
    try:
        return _ROOM_ALIASES[key]
    except KeyError:
        raise ValueError(f"unknown room: {value!r}") from None


def format_file_timestamp(when: datetime) -> str:
    return when.strftime("%Y-%m-%d_%H-%M-%S")


def log_file_name(room: Room, when: datetime) -> str:
    return f"{room.tag}-RPChatLog-{format_file_timestamp(when)}.md"


def is_log_file_name(name: str) -> bool:
    return LOG_FILE_PATTERN.match(name) is not None


def normalize_url(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    raw = str(value).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")
