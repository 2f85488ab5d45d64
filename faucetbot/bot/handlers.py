from __future__ import annotations

import contextlib
import logging

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from faucetbot.bot.keyboards import REVIEW_PREFIX, parse_review_callback
from faucetbot.core.container import ServiceHub
from faucetbot.core.privacy import is_shared_chat
from faucetbot.db.models import RequestStatus
from faucetbot.services.conversation import InboundEvent, OutboundMessage

router = Router()
_hub: ServiceHub | None = None
logger = logging.getLogger(__name__)

FAILURE_REPLY = "⚠️ Something went wrong on my side. Please try again in a minute."


def init_handlers(hub: ServiceHub) -> None:
    global _hub
    _hub = hub


def _require_hub() -> ServiceHub:
    if _hub is None:
        raise RuntimeError("Handlers not initialized")
    return _hub


def event_from_message(message: Message) -> InboundEvent | None:
    user = message.from_user
    if user is None or user.is_bot or not message.text:
        return None
    return InboundEvent(
        chat_id=message.chat.id,
        sender_id=user.id,
        sender_username=user.username,
        sender_display_name=user.first_name or user.username or str(user.id),
        text=message.text,
        is_shared_channel=is_shared_chat(message.chat.type, message.chat.id),
    )


async def deliver(bot: Bot, replies: list[OutboundMessage]) -> int:
    sent = 0
    for reply in replies:
        try:
            await bot.send_message(chat_id=reply.chat_id, text=reply.text)
            sent += 1
        except TelegramAPIError as exc:
            logger.warning("reply_send_failed", extra={"event": "reply_send_failed", "chat_id": reply.chat_id, "error": str(exc)})
    return sent


async def send_notice(bot: Bot, chat_id: int, text: str, reply_markup: InlineKeyboardMarkup | None = None) -> None:
    await bot.send_message(chat_id=chat_id, text=text, reply_markup=reply_markup)


@router.message(F.text)
async def route_text(message: Message) -> None:
    hub = _require_hub()
    event = event_from_message(message)
    if event is None:
        return

    try:
        replies = await hub.conversation.handle(event)
    except Exception:  # noqa: BLE001
        logger.exception(
            "conversation_failed",
            extra={"event": "conversation_failed", "chat_id": event.chat_id, "user_id": event.sender_id},
        )
        replies = [OutboundMessage(chat_id=event.chat_id, text=FAILURE_REPLY)]

    await deliver(hub.bot, replies)


@router.callback_query(F.data.startswith(f"{REVIEW_PREFIX}:"))
async def review_cb(callback: CallbackQuery) -> None:
    hub = _require_hub()
    parsed = parse_review_callback(callback.data)
    if parsed is None:
        await callback.answer("Unknown action", show_alert=True)
        return
    if not hub.settings.is_admin(callback.from_user.id):
        await callback.answer("Admin access required.", show_alert=True)
        return

    action, request_id = parsed
    target = RequestStatus.APPROVED if action == "approve" else RequestStatus.REJECTED
    try:
        text = await hub.conversation.review(callback.from_user.id, target, request_id)
    except Exception:  # noqa: BLE001
        logger.exception("review_failed", extra={"event": "review_failed", "request_id": request_id})
        await callback.answer("Failed, try again.", show_alert=True)
        return

    if isinstance(callback.message, Message):
        with contextlib.suppress(TelegramAPIError):
            await callback.message.edit_reply_markup(reply_markup=None)
        await callback.message.answer(text)
    await callback.answer()
