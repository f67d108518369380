from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class RoomPreference(TimestampMixin, Base):
    __tablename__ = "rpc_room_preferences"

    player_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    room: Mapped[str] = mapped_column(String(16), nullable=False, default="space")

    __table_args__ = (
        CheckConstraint("room IN ('fantasy','space')", name="room_preference_room_valid"),
    )


class UploadedLog(Base):
    __tablename__ = "rpc_uploaded_logs"

    log_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    uploaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    upload_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)


Index("ix_rpc_uploaded_logs_uploaded_time", UploadedLog.uploaded, UploadedLog.upload_time)
