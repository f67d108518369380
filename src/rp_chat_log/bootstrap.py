from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from .core.config import ChatLogConfig
from .core.delivery import DeliveryClient, UrllibTransport
from .core.flush import FlushScheduler
from .core.manager import SessionManager
from .core.ports import HttpTransport
from .persistence.interfaces import PreferenceStore, UploadLedger
from .persistence.json_files import JsonPreferenceStore, JsonUploadLedger


def build_stores(config: ChatLogConfig) -> tuple[PreferenceStore, UploadLedger]:
    if not config.storage_url:
        return (
            JsonPreferenceStore(config.preferences_path),
            JsonUploadLedger(config.upload_ledger_path),
        )

    from .persistence.sqlalchemy import (
        SQLAlchemyPreferenceStore,
        SQLAlchemyUnitOfWork,
        SQLAlchemyUploadLedger,
        build_engine,
        build_session_factory,
        create_schema,
    )

    engine = build_engine(config.storage_url)
    create_schema(engine)
    session_factory = build_session_factory(engine)

    def _uow_factory():
        return SQLAlchemyUnitOfWork(session_factory)

    return SQLAlchemyPreferenceStore(_uow_factory), SQLAlchemyUploadLedger(_uow_factory)


def build_manager(
    config: ChatLogConfig,
    *,
    transport: HttpTransport | None = None,
    clock: Callable[[], datetime] | None = None,
    logger: logging.Logger | None = None,
) -> SessionManager:
    preferences, ledger = build_stores(config)
    delivery = DeliveryClient(
        config.webhook_url,
        config.file_webhook_url,
        transport=transport or UrllibTransport(config.request_timeout_seconds),
        logger=logger,
    )
    scheduler = FlushScheduler(
        delivery,
        batch_line_limit=config.batch_line_limit,
        batch_size_limit=config.batch_size_limit,
        idle_flush_seconds=config.idle_flush_seconds,
        relay_enabled=config.relay_enabled,
        logger=logger,
    )
    return SessionManager(
        preferences,
        ledger,
        delivery,
        scheduler,
        log_dir=config.log_dir,
        upload_files=config.upload_files,
        clock=clock,
        logger=logger,
    )
