from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import RoomPreference, UploadedLog


class RoomPreferenceRepo:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[RoomPreference]:
        stmt = select(RoomPreference).order_by(RoomPreference.created_at, RoomPreference.player_id)
        return list(self.session.execute(stmt).scalars().all())

    def get(self, player_id: str) -> RoomPreference | None:
        return self.session.get(RoomPreference, player_id)

    def upsert(self, player_id: str, room: str) -> RoomPreference:
        row = self.get(player_id)
        if row is None:
            row = RoomPreference(player_id=player_id, room=room)
            self.session.add(row)
        else:
            row.room = room
            row.updated_at = datetime.utcnow()
        self.session.flush()
        return row


class UploadedLogRepo:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[UploadedLog]:
        stmt = select(UploadedLog).order_by(UploadedLog.upload_time, UploadedLog.log_name)
        return list(self.session.execute(stmt).scalars().all())

    def get(self, log_name: str) -> UploadedLog | None:
        return self.session.get(UploadedLog, log_name)

    def recorded_names(self) -> set[str]:
        stmt = select(UploadedLog.log_name)
        return set(self.session.execute(stmt).scalars().all())

    def add(self, log_name: str, uploaded: bool, upload_time: datetime) -> bool:
        try:
            with self.session.begin_nested():
                self.session.add(UploadedLog(log_name=log_name, uploaded=uploaded, upload_time=upload_time))
                self.session.flush()
        except IntegrityError as exc:
            message = str(exc).lower()
            if "rpc_uploaded_logs.log_name" in message or "rpc_uploaded_logs_pkey" in message:
                # Names are unique; a duplicate insert is a no-op.
                return False
            raise
        return True

    def mark_uploaded(self, log_name: str, upload_time: datetime) -> bool:
        stmt = (
            update(UploadedLog)
            .where(UploadedLog.log_name == log_name)
            .where(UploadedLog.uploaded.is_(False))
            .values(uploaded=True, upload_time=upload_time)
        )
        return (self.session.execute(stmt).rowcount or 0) == 1
