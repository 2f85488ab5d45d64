from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from faucetbot.db.models import TokenRequest

logger = logging.getLogger(__name__)

SendFn = Callable[..., Awaitable[None]]


class AdminNotifier:
    """Best-effort side channel to the configured admin and to requesters.

    No admin configured means admin notices are skipped. Send failures are
    logged and never propagate.
    """

    def __init__(self, send: SendFn | None, admin_chat_id: int | None) -> None:
        self.send = send
        self.admin_chat_id = admin_chat_id

    @property
    def enabled(self) -> bool:
        return self.send is not None and self.admin_chat_id is not None

    async def _deliver(self, chat_id: int, text: str, event: str, **send_kwargs: Any) -> bool:
        if self.send is None:
            return False
        try:
            await self.send(chat_id, text, **send_kwargs)
        except Exception as exc:  # noqa: BLE001
            logger.warning("admin_notify_failed", extra={"event": "admin_notify_failed", "kind": event, "chat_id": chat_id, "error": str(exc)})
            return False
        return True

    async def notify_admin(self, text: str, event: str = "admin_notice", **send_kwargs: Any) -> bool:
        if not self.enabled:
            return False
        return await self._deliver(self.admin_chat_id, text, event, **send_kwargs)  # type: ignore[arg-type]

    async def notify_user(self, request: TokenRequest, text: str) -> bool:
        # in a private chat the chat id equals the user id
        return await self._deliver(request.user_id, text, "requester_notice")
