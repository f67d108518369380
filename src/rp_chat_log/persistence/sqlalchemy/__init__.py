from .db import build_engine, build_session_factory, create_schema
from .stores import SQLAlchemyPreferenceStore, SQLAlchemyUploadLedger
from .uow import SQLAlchemyUnitOfWork

__all__ = [
    "build_engine",
    "build_session_factory",
    "create_schema",
    "SQLAlchemyUnitOfWork",
    "SQLAlchemyPreferenceStore",
    "SQLAlchemyUploadLedger",
]
