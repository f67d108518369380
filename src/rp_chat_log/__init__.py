from .bootstrap import build_manager, build_stores
from .core.config import ChatLogConfig, load_config
from .core.delivery import DeliveryClient
from .core.flush import FlushScheduler
from .core.manager import SessionManager
from .core.session import ChatLogSession
from .core.types import ChatEvent, ClearEvent, JoinEvent, LeaveEvent, PreferenceChangeEvent, Room
from .persistence.json_files import JsonPreferenceStore, JsonUploadLedger

__all__ = [
    "build_manager",
    "build_stores",
    "ChatLogConfig",
    "load_config",
    "DeliveryClient",
    "FlushScheduler",
    "SessionManager",
    "ChatLogSession",
    "ChatEvent",
    "ClearEvent",
    "JoinEvent",
    "LeaveEvent",
    "PreferenceChangeEvent",
    "Room",
    "JsonPreferenceStore",
    "JsonUploadLedger",
]
