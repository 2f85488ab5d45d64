from __future__ import annotations

from dataclasses import dataclass

from aiogram import Bot

from faucetbot.core.config import Settings
from faucetbot.db.store import LedgerStore
from faucetbot.services.conversation import ConversationService
from faucetbot.services.ledger import RequestLedger
from faucetbot.services.notifier import AdminNotifier


@dataclass
class ServiceHub:
    """Everything a handler needs, built once per process in `build_hub`."""

    bot: Bot
    settings: Settings
    store: LedgerStore
    ledger: RequestLedger
    notifier: AdminNotifier
    conversation: ConversationService
