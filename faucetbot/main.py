from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand, Update
from fastapi import FastAPI, HTTPException, Request

from faucetbot.bot.handlers import init_handlers, router, send_notice
from faucetbot.bot.keyboards import request_review_menu
from faucetbot.bot.templates import admin_new_request_text
from faucetbot.core.config import Settings, get_settings
from faucetbot.core.container import ServiceHub
from faucetbot.core.logging import setup_logging
from faucetbot.db.models import TokenRequest
from faucetbot.db.store import LedgerStore
from faucetbot.services.conversation import ConversationService
from faucetbot.services.ledger import RequestLedger
from faucetbot.services.notifier import AdminNotifier

logger = logging.getLogger(__name__)

PUBLIC_COMMANDS = [
    ("start", "Welcome message and setup guide"),
    ("help", "Show available commands"),
    ("tokens", "Request test tokens"),
    ("mystatus", "Check your token request"),
    ("setup", "BSC Testnet wallet setup"),
    ("report", "Report a bug or issue"),
    ("status", "Testing progress"),
    ("rewards", "Testing rewards"),
    ("privacy", "How your data is handled"),
]
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def build_hub(settings: Settings, bot: Bot) -> ServiceHub:
    store = LedgerStore(settings.ledger_file())

    async def _send(chat_id: int, text: str, reply_markup=None) -> None:
        await send_notice(bot, chat_id, text, reply_markup=reply_markup)

    notifier = AdminNotifier(send=_send, admin_chat_id=settings.admin_chat_id())

    async def _on_submitted(request: TokenRequest) -> None:
        await notifier.notify_admin(
            admin_new_request_text(request),
            event="new_request",
            reply_markup=request_review_menu(request.request_id),
        )

    ledger = RequestLedger(
        store,
        io_timeout_sec=settings.ledger_io_timeout_sec,
        retry_attempts=settings.ledger_retry_attempts,
        retry_base_wait_sec=settings.ledger_retry_base_wait_sec,
        retry_max_wait_sec=settings.ledger_retry_max_wait_sec,
        on_submitted=_on_submitted,
    )
    return ServiceHub(
        bot=bot,
        settings=settings,
        store=store,
        ledger=ledger,
        notifier=notifier,
        conversation=ConversationService(ledger, notifier, settings),
    )


async def _register_commands(bot: Bot) -> None:
    try:
        await bot.set_my_commands([BotCommand(command=name, description=desc) for name, desc in PUBLIC_COMMANDS])
    except Exception as exc:  # noqa: BLE001
        logger.warning("set_bot_commands_failed", extra={"event": "set_bot_commands_failed", "error": str(exc)})


async def _start_transport(settings: Settings, bot: Bot, dp: Dispatcher) -> asyncio.Task | None:
    """Register the webhook, or start long polling. Returns the polling task."""
    if not settings.telegram_use_webhook:
        logger.info("polling_started", extra={"event": "polling_started"})
        return asyncio.create_task(dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types()))

    url = settings.telegram_webhook_url.rstrip("/") + settings.telegram_webhook_path
    try:
        await bot.set_webhook(url, secret_token=settings.telegram_webhook_secret or None)
    except Exception as exc:  # noqa: BLE001
        # the ledger and health endpoints stay up; Telegram retries delivery once fixed
        logger.exception("webhook_register_failed", extra={"event": "webhook_register_failed", "url": url, "error": str(exc)})
    else:
        logger.info("webhook_registered", extra={"event": "webhook_registered", "url": url})
    return None


async def _stop_transport(polling_task: asyncio.Task | None) -> None:
    if polling_task is None:
        return
    polling_task.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await polling_task


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)

    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required")
    if settings.admin_chat_id() is None:
        logger.warning("admin_not_configured", extra={"event": "admin_not_configured"})

    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    hub = build_hub(settings, bot)
    await hub.ledger.open()

    dp = Dispatcher()
    init_handlers(hub)
    dp.include_router(router)
    await _register_commands(bot)
    polling_task = await _start_transport(settings, bot, dp)

    app.state.hub = hub
    app.state.dp = dp
    try:
        yield
    finally:
        await _stop_transport(polling_task)
        await hub.ledger.close()
        await bot.session.close()
        logger.info("shutdown_complete", extra={"event": "shutdown_complete", **hub.ledger.stats()})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Faucet Bot", version="1.0.0", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat()}

    @app.get("/ready")
    async def ready() -> dict:
        ledger = app.state.hub.ledger
        stats = ledger.stats()
        if stats["degraded"]:
            raise HTTPException(status_code=503, detail=ledger.last_persist_error or "ledger degraded")
        return {"status": "ready", **stats}

    @app.post(settings.telegram_webhook_path)
    async def telegram_webhook(req: Request) -> dict:
        hub: ServiceHub = app.state.hub
        if not hub.settings.telegram_use_webhook:
            raise HTTPException(status_code=400, detail="Webhook mode disabled")
        expected = hub.settings.telegram_webhook_secret
        if expected and req.headers.get(SECRET_HEADER, "") != expected:
            raise HTTPException(status_code=403, detail="Invalid secret")

        update = Update.model_validate(await req.json(), context={"bot": hub.bot})
        await app.state.dp.feed_update(hub.bot, update)
        return {"ok": True}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("faucetbot.main:app", host=settings.host, port=settings.port, reload=False)
