from .config import AuthorizedUser, ChatLogConfig, load_config
from .delivery import DeliveryClient, UrllibTransport, encode_multipart
from .errors import ConfigError, MalformedStateError, PersistenceError, RPChatLogError
from .flush import FlushScheduler
from .manager import SessionManager
from .ports import BufferSink, DeliveryPort, HttpTransport
from .session import LOG_TRAILER, ChatLogSession, upload_log_file
from .types import (
    ChatEvent,
    ClearEvent,
    DeliveryResult,
    EventResult,
    JoinEvent,
    LeaveEvent,
    LogLine,
    PreferenceChangeEvent,
    Room,
    SessionEvent,
    UploadLedgerEntry,
)

__all__ = [
    "AuthorizedUser",
    "ChatLogConfig",
    "load_config",
    "DeliveryClient",
    "UrllibTransport",
    "encode_multipart",
    "ConfigError",
    "MalformedStateError",
    "PersistenceError",
    "RPChatLogError",
    "FlushScheduler",
    "SessionManager",
    "BufferSink",
    "DeliveryPort",
    "HttpTransport",
    "LOG_TRAILER",
    "ChatLogSession",
    "upload_log_file",
    "ChatEvent",
    "ClearEvent",
    "DeliveryResult",
    "EventResult",
    "JoinEvent",
    "LeaveEvent",
    "LogLine",
    "PreferenceChangeEvent",
    "Room",
    "SessionEvent",
    "UploadLedgerEntry",
]
