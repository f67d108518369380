from __future__ import annotations

import asyncio
import json
import tempfile
from pathlib import Path

from rp_chat_log.bootstrap import build_manager
from rp_chat_log.core.config import ChatLogConfig
from rp_chat_log.core.types import (
    ChatEvent,
    DeliveryResult,
    JoinEvent,
    LeaveEvent,
    PreferenceChangeEvent,
    Room,
)


class PrintingTransport:
    """Stands in for the webhook endpoint and prints what would be posted."""

    async def post(self, url, body, headers):
        content_type = headers.get("Content-Type", "")
        if content_type == "application/json":
            print(f"POST {url} ->", json.loads(body)["content"])
        else:
            print(f"POST {url} -> multipart upload ({len(body)} bytes)")
        return DeliveryResult(status=204)


async def main() -> None:
    workdir = Path(tempfile.mkdtemp(prefix="rp-chat-log-"))
    config = ChatLogConfig.from_mapping(
        {
            "rpChatLogWebhookUrl": "https://hooks.example/rp-chat",
            "uploadFiles": True,
            "sendChatAsWellAsFiles": True,
            "rpChatLogCacheSize": 3,
            "logDirectory": str(workdir / "logs"),
            "dataDirectory": str(workdir),
        }
    )
    manager = build_manager(config, transport=PrintingTransport())
    await manager.start()

    await manager.handle(PreferenceChangeEvent("actor-2", "Orin", Room.FANTASY))
    await manager.handle(JoinEvent("actor-1", "Player One"))
    await manager.handle(JoinEvent("actor-2", "Orin"))
    await manager.handle(ChatEvent("actor-1", "Player One", "Docking at the relay station."))
    await manager.handle(ChatEvent("actor-2", "Orin", "The tavern door creaks open."))
    await manager.handle(ChatEvent("actor-1", "Player One", "Airlock cycling."))
    await manager.handle(LeaveEvent("actor-1", "Player One"))
    await manager.shutdown()

    for path in sorted((workdir / "logs").iterdir()):
        print("---", path.name)
        print(path.read_text(encoding="utf-8"))
    print("ledger:", (workdir / "uploadedLogList.json").read_text(encoding="utf-8"))


if __name__ == "__main__":
    asyncio.run(main())
