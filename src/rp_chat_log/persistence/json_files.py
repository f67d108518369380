from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from ..core.errors import MalformedStateError, PersistenceError
from ..core.normalize import parse_room
from ..core.types import Room, UploadLedgerEntry


def _read_json_array(path: Path) -> list[Any] | None:
    """Return the parsed array, or ``None`` when the file does not exist yet."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as exc:
        raise MalformedStateError(f"could not read {path}: {exc}") from exc
    if not isinstance(data, list):
        raise MalformedStateError(f"{path} must hold a JSON array")
    return data


def _write_json_array(path: Path, data: list[dict[str, Any]]) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False)
        os.replace(tmp_path, path)
    except OSError as exc:
        raise PersistenceError(f"could not write {path}: {exc}") from exc


def _parse_time(value: Any) -> datetime:
    raw = str(value or "").strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


class JsonPreferenceStore:
    """Player room preferences, written through to a JSON file.

    File shape: ``[{"playerId": "...", "room": "space"}, ...]``.
    """

    def __init__(self, path: str | Path, *, logger: logging.Logger | None = None):
        self._path = Path(path)
        self._logger = logger or logging.getLogger(__name__)
        self._prefs: dict[str, Room] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Room]:
        rows = _read_json_array(self._path)
        prefs: dict[str, Room] = {}
        for row in rows or []:
            if not isinstance(row, dict) or "playerId" not in row:
                raise MalformedStateError(f"{self._path}: bad preference entry {row!r}")
            try:
                prefs[str(row["playerId"])] = parse_room(row.get("room"))
            except ValueError as exc:
                raise MalformedStateError(f"{self._path}: {exc}") from exc
        self._prefs = prefs
        self._logger.debug("Loaded %s room preferences from %s", len(prefs), self._path)
        return dict(prefs)

    def get(self, player_id: str) -> Room | None:
        return self._state().get(player_id)

    def set(self, player_id: str, room: Room) -> None:
        updated = dict(self._state())
        updated[player_id] = room
        _write_json_array(
            self._path,
            [{"playerId": pid, "room": value.value} for pid, value in updated.items()],
        )
        self._prefs = updated

    def all(self) -> dict[str, Room]:
        return dict(self._state())

    def _state(self) -> dict[str, Room]:
        if self._prefs is None:
            self.load()
        assert self._prefs is not None
        return self._prefs


class JsonUploadLedger:
    """Record of uploaded log files kept in a JSON file.

    File shape: ``[{"uploaded": true, "logName": "...", "uploadTime": "..."}]``.
    """

    def __init__(self, path: str | Path, *, logger: logging.Logger | None = None):
        self._path = Path(path)
        self._logger = logger or logging.getLogger(__name__)
        self._entries: list[UploadLedgerEntry] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[UploadLedgerEntry]:
        rows = _read_json_array(self._path)
        entries: list[UploadLedgerEntry] = []
        seen: set[str] = set()
        for row in rows or []:
            if not isinstance(row, dict) or not row.get("logName"):
                raise MalformedStateError(f"{self._path}: bad ledger entry {row!r}")
            try:
                entry = UploadLedgerEntry(
                    log_name=str(row["logName"]),
                    uploaded=bool(row.get("uploaded", True)),
                    upload_time=_parse_time(row.get("uploadTime")),
                )
            except ValueError as exc:
                raise MalformedStateError(f"{self._path}: {exc}") from exc
            if entry.log_name in seen:
                continue
            seen.add(entry.log_name)
            entries.append(entry)
        self._entries = entries
        return list(entries)

    def record_upload(self, log_name: str, timestamp: datetime, uploaded: bool = True) -> bool:
        """Record an upload attempt. Returns whether the ledger changed.

        A name is stored once; a later successful upload replaces an earlier
        failed entry for the same name.
        """
        entries = list(self._state())
        entry = UploadLedgerEntry(log_name=log_name, uploaded=uploaded, upload_time=timestamp)
        for index, existing in enumerate(entries):
            if existing.log_name != log_name:
                continue
            if existing.uploaded or not uploaded:
                return False
            entries[index] = entry
            break
        else:
            entries.append(entry)

        _write_json_array(
            self._path,
            [
                {
                    "uploaded": item.uploaded,
                    "logName": item.log_name,
                    "uploadTime": item.upload_time.isoformat(),
                }
                for item in entries
            ],
        )
        self._entries = entries
        return True

    def not_yet_uploaded(self, candidate_names: Iterable[str]) -> list[str]:
        recorded = {entry.log_name for entry in self._state()}
        out: list[str] = []
        for name in candidate_names:
            if name not in recorded and name not in out:
                out.append(name)
        return out

    def _state(self) -> list[UploadLedgerEntry]:
        if self._entries is None:
            self.load()
        assert self._entries is not None
        return self._entries
