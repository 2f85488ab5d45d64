from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from faucetbot.core.nlu import Intent

BUG_REPORT_SHARED_MAX_CHARS = 100
ELLIPSIS = "..."
PRIVATE_CHAT_TYPES = {"private"}


class GateAction(str, Enum):
    PROCEED = "proceed"
    DEFER = "defer"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    masked_summary: str | None = None

    @property
    def deferred(self) -> bool:
        return self.action == GateAction.DEFER


PROCEED = GateDecision(GateAction.PROCEED)


def mask_address(address: str) -> str:
    return f"{address[:6]}{ELLIPSIS}{address[-4:]}"


def truncate_report(text: str, limit: int = BUG_REPORT_SHARED_MAX_CHARS) -> str:
    return f"{text[:limit]}{ELLIPSIS}"


def is_shared_chat(chat_type: str | None = None, chat_id: int | None = None) -> bool:
    """Prefer the transport's chat type; negative ids are group chats on Telegram."""
    if chat_type:
        return str(chat_type).lower() not in PRIVATE_CHAT_TYPES
    if chat_id is not None:
        return int(chat_id) < 0
    return False


def guard(is_shared_channel: bool, payload_kind: Intent, payload: str) -> GateDecision:
    if not is_shared_channel:
        return PROCEED
    if payload_kind == Intent.WALLET_CANDIDATE:
        return GateDecision(GateAction.DEFER, mask_address(payload))
    if payload_kind == Intent.BUG_REPORT and len(payload) > BUG_REPORT_SHARED_MAX_CHARS:
        return GateDecision(GateAction.DEFER, truncate_report(payload))
    return PROCEED
