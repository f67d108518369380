from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol

from ..core.types import Room, UploadLedgerEntry


class PreferenceStore(Protocol):
    def load(self) -> dict[str, Room]: ...
    def get(self, player_id: str) -> Room | None: ...
    def set(self, player_id: str, room: Room) -> None: ...
    def all(self) -> dict[str, Room]: ...


class UploadLedger(Protocol):
    def load(self) -> list[UploadLedgerEntry]: ...
    def record_upload(self, log_name: str, timestamp: datetime, uploaded: bool = True) -> bool: ...
    def not_yet_uploaded(self, candidate_names: Iterable[str]) -> list[str]: ...


class RoomPreferenceRepo(Protocol):
    def list_all(self): ...
    def upsert(self, player_id: str, room: str): ...


class UploadedLogRepo(Protocol):
    def list_all(self): ...
    def get(self, log_name: str): ...
    def recorded_names(self) -> set[str]: ...
    def add(self, log_name: str, uploaded: bool, upload_time: datetime): ...
    def mark_uploaded(self, log_name: str, upload_time: datetime): ...


class UnitOfWork(Protocol):
    preferences: RoomPreferenceRepo
    uploads: UploadedLogRepo

    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
