from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError
from .normalize import normalize_url, parse_bool

PREFERENCES_FILE_NAME = "playerRoomPreferences.json"
UPLOAD_LEDGER_FILE_NAME = "uploadedLogList.json"


@dataclass(frozen=True)
class AuthorizedUser:
    id: str
    name: str = ""


@dataclass(frozen=True)
class ChatLogConfig:
    only_authorized: bool = False
    authorized_users: tuple[AuthorizedUser, ...] = ()
    authorized_roles: tuple[str, ...] = ()
    admin_roles: tuple[str, ...] = ()
    cooldown_seconds: float = 0.0
    webhook_url: str | None = None
    file_webhook_url: str | None = None
    upload_files: bool = False
    send_chat_as_well_as_files: bool = False
    idle_flush_minutes: float = 5
    batch_line_limit: int = 10
    batch_size_limit: int = 1900
    log_dir: Path = Path(".")
    data_dir: Path = Path(".")
    storage_url: str | None = None
    request_timeout_seconds: float = 10.0

    @property
    def relay_enabled(self) -> bool:
        """Whether buffered chat text is relayed, as opposed to files only."""
        return not self.upload_files or self.send_chat_as_well_as_files

    @property
    def idle_flush_seconds(self) -> float | None:
        seconds = max(float(self.idle_flush_minutes) * 60.0, 0.0)
        return seconds or None

    @property
    def file_destination(self) -> str | None:
        return self.file_webhook_url or self.webhook_url

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / PREFERENCES_FILE_NAME

    @property
    def upload_ledger_path(self) -> Path:
        return self.data_dir / UPLOAD_LEDGER_FILE_NAME

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ChatLogConfig":
        """Build a config from the plugin's option keys.

        Unknown keys are ignored so one file can also carry options for the
        command layer.
        """
        defaults = cls()
        try:
            users = tuple(
                AuthorizedUser(id=str(entry["id"]), name=str(entry.get("name") or ""))
                for entry in raw.get("authorized-users") or []
            )
            config = cls(
                only_authorized=parse_bool(raw.get("only-authorized"), defaults.only_authorized),
                authorized_users=users,
                authorized_roles=tuple(str(role) for role in raw.get("authorized-roles") or []),
                admin_roles=tuple(str(role) for role in raw.get("admin-roles") or []),
                cooldown_seconds=float(raw.get("cooldown", defaults.cooldown_seconds) or 0),
                webhook_url=normalize_url(raw.get("rpChatLogWebhookUrl")),
                file_webhook_url=normalize_url(raw.get("fileFileAlternateWebhookUrl")),
                upload_files=parse_bool(raw.get("uploadFiles"), defaults.upload_files),
                send_chat_as_well_as_files=parse_bool(
                    raw.get("sendChatAsWellAsFiles"), defaults.send_chat_as_well_as_files
                ),
                idle_flush_minutes=float(
                    raw.get("rpChatLogTimeoutMins", defaults.idle_flush_minutes)
                ),
                batch_line_limit=int(raw.get("rpChatLogCacheSize", defaults.batch_line_limit)),
                batch_size_limit=int(
                    raw.get("rpChatLogBatchSizeLimit", defaults.batch_size_limit)
                ),
                log_dir=Path(raw.get("logDirectory") or defaults.log_dir),
                data_dir=Path(raw.get("dataDirectory") or defaults.data_dir),
                storage_url=normalize_url(raw.get("storageUrl")),
                request_timeout_seconds=float(
                    raw.get("requestTimeoutSeconds", defaults.request_timeout_seconds)
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"invalid chat log configuration: {exc}") from exc

        if config.batch_line_limit < 1:
            raise ConfigError("rpChatLogCacheSize must be at least 1")
        if config.batch_size_limit < 1:
            raise ConfigError("rpChatLogBatchSizeLimit must be at least 1")
        return config


def load_config(path: str | Path) -> ChatLogConfig:
    config_path = Path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {config_path}") from None
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"could not read config {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"config {config_path} must hold a JSON object")
    return ChatLogConfig.from_mapping(raw)
