from __future__ import annotations

from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

REVIEW_PREFIX = "req"


def request_review_menu(request_id: str) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="✅ Approve", callback_data=f"{REVIEW_PREFIX}:approve:{request_id}")
    kb.button(text="🚫 Reject", callback_data=f"{REVIEW_PREFIX}:reject:{request_id}")
    kb.adjust(2)
    return kb.as_markup()


def parse_review_callback(data: str | None) -> tuple[str, str] | None:
    """`req:approve:req_ab12` -> ("approve", "req_ab12")."""
    parts = (data or "").split(":", 2)
    if len(parts) != 3 or parts[0] != REVIEW_PREFIX or parts[1] not in {"approve", "reject"} or not parts[2]:
        return None
    return parts[1], parts[2]
