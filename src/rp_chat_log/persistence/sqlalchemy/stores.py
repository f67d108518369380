from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError

from ...core.errors import MalformedStateError, PersistenceError
from ...core.normalize import parse_room
from ...core.types import Room, UploadLedgerEntry
from ..interfaces import UnitOfWork

UowFactory = Callable[[], UnitOfWork]


class SQLAlchemyPreferenceStore:
    """Room preferences in a database table, cached in memory.

    The cache is only updated after the row has been committed.
    """

    def __init__(self, uow_factory: UowFactory, *, logger: logging.Logger | None = None):
        self._uow_factory = uow_factory
        self._logger = logger or logging.getLogger(__name__)
        self._prefs: dict[str, Room] | None = None

    def load(self) -> dict[str, Room]:
        try:
            with self._uow_factory() as uow:
                rows = [(row.player_id, row.room) for row in uow.preferences.list_all()]
        except SQLAlchemyError as exc:
            raise MalformedStateError(f"could not load room preferences: {exc}") from exc
        prefs: dict[str, Room] = {}
        for player_id, room in rows:
            try:
                prefs[player_id] = parse_room(room)
            except ValueError as exc:
                raise MalformedStateError(str(exc)) from exc
        self._prefs = prefs
        return dict(prefs)

    def get(self, player_id: str) -> Room | None:
        return self._state().get(player_id)

    def set(self, player_id: str, room: Room) -> None:
        state = self._state()
        try:
            with self._uow_factory() as uow:
                uow.preferences.upsert(player_id, room.value)
                uow.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not save room preference for {player_id}: {exc}") from exc
        state[player_id] = room

    def all(self) -> dict[str, Room]:
        return dict(self._state())

    def _state(self) -> dict[str, Room]:
        if self._prefs is None:
            self.load()
        assert self._prefs is not None
        return self._prefs


class SQLAlchemyUploadLedger:
    def __init__(self, uow_factory: UowFactory, *, logger: logging.Logger | None = None):
        self._uow_factory = uow_factory
        self._logger = logger or logging.getLogger(__name__)

    def load(self) -> list[UploadLedgerEntry]:
        try:
            with self._uow_factory() as uow:
                return [
                    UploadLedgerEntry(
                        log_name=row.log_name,
                        uploaded=row.uploaded,
                        upload_time=row.upload_time,
                    )
                    for row in uow.uploads.list_all()
                ]
        except SQLAlchemyError as exc:
            raise MalformedStateError(f"could not load upload ledger: {exc}") from exc

    def record_upload(self, log_name: str, timestamp: datetime, uploaded: bool = True) -> bool:
        try:
            with self._uow_factory() as uow:
                existing = uow.uploads.get(log_name)
                if existing is None:
                    changed = uow.uploads.add(log_name, uploaded, timestamp)
                elif uploaded and not existing.uploaded:
                    changed = uow.uploads.mark_uploaded(log_name, timestamp)
                else:
                    changed = False
                uow.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not record upload of {log_name}: {exc}") from exc
        return changed

    def not_yet_uploaded(self, candidate_names: Iterable[str]) -> list[str]:
        try:
            with self._uow_factory() as uow:
                recorded = uow.uploads.recorded_names()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not read upload ledger: {exc}") from exc
        out: list[str] = []
        for name in candidate_names:
            if name not in recorded and name not in out:
                out.append(name)
        return out
