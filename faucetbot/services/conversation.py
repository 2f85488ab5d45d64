from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from faucetbot.bot.templates import (
    Brand,
    admin_bug_report_text,
    admin_required_text,
    approved_list_text,
    bug_privacy_notice,
    bug_received_text,
    distribution_text,
    fallback_reply,
    help_text,
    ledger_error_text,
    my_status_text,
    pending_list_text,
    privacy_text,
    report_prompt_text,
    request_submitted_text,
    requester_decision_text,
    rewards_text,
    setup_text,
    stats_text,
    status_text,
    tokens_text,
    topic_reply,
    transition_done_text,
    unknown_command_text,
    wallet_privacy_notice,
    welcome_text,
)
from faucetbot.core.config import Settings
from faucetbot.core.nlu import Intent, Topic, classify
from faucetbot.core.privacy import guard
from faucetbot.db.models import RequestStatus
from faucetbot.services.distribution import export_distribution
from faucetbot.services.errors import LedgerError
from faucetbot.services.ledger import RequestLedger
from faucetbot.services.notifier import AdminNotifier
from faucetbot.services.triage import triage_report

logger = logging.getLogger(__name__)

ADMIN_COMMANDS = {"pending", "approved", "stats", "generate_distribution", "approve", "reject"}
TRANSITION_COMMANDS = {"approve": RequestStatus.APPROVED, "reject": RequestStatus.REJECTED}


@dataclass
class InboundEvent:
    chat_id: int
    sender_id: int
    sender_display_name: str
    text: str
    sender_username: str | None = None
    is_shared_channel: bool = False


@dataclass
class OutboundMessage:
    chat_id: int
    text: str


def split_transition_command(name: str, args: list[str]) -> tuple[str, str | None]:
    """`approve_req_1` / `approve req_1` -> ("approve", "req_1")."""
    for base in TRANSITION_COMMANDS:
        prefix = f"{base}_"
        if name.startswith(prefix) and len(name) > len(prefix):
            return base, name[len(prefix):]
        if name == base:
            return base, (args[0] if args else None)
    return name, None


class ConversationService:
    """Turns one inbound chat event into the replies for that chat.

    Side-channel notices (admin alerts, requester decisions) go through the
    notifier; everything returned is addressed to the originating chat.
    """

    def __init__(
        self,
        ledger: RequestLedger,
        notifier: AdminNotifier,
        settings: Settings,
    ) -> None:
        self.ledger = ledger
        self.notifier = notifier
        self.settings = settings
        self.brand = Brand.from_settings(settings)
        self.distribution_path = settings.distribution_file()
        self._commands: dict[str, Callable[[InboundEvent, list[str]], Awaitable[str]]] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "tokens": self._cmd_tokens,
            "report": self._cmd_report,
            "status": self._cmd_status,
            "setup": self._cmd_setup,
            "rewards": self._cmd_rewards,
            "privacy": self._cmd_privacy,
            "mystatus": self._cmd_mystatus,
            "pending": self._cmd_pending,
            "approved": self._cmd_approved,
            "stats": self._cmd_stats,
            "generate_distribution": self._cmd_generate_distribution,
        }

    def _reply(self, event: InboundEvent, text: str) -> list[OutboundMessage]:
        return [OutboundMessage(chat_id=event.chat_id, text=text)]

    async def handle(self, event: InboundEvent) -> list[OutboundMessage]:
        parsed = classify(event.text, event.is_shared_channel)

        if parsed.intent == Intent.COMMAND:
            return self._reply(event, await self._handle_command(event, parsed.entities["name"], parsed.entities["args"]))
        if parsed.intent == Intent.WALLET_CANDIDATE:
            return self._reply(event, await self._handle_wallet(event, parsed.entities["address"]))
        if parsed.intent == Intent.BUG_REPORT:
            return self._reply(event, await self._handle_bug_report(event, parsed.entities["text"]))
        if self.ledger.find_by_user(event.sender_id) is None:
            # users with no request yet get the welcome instead of small talk
            return self._reply(event, welcome_text(event.sender_display_name, self.brand))
        if parsed.intent == Intent.CONVERSATIONAL:
            topic: Topic = parsed.entities["topic"]
            return self._reply(event, topic_reply(topic, event.sender_display_name, self.brand))
        return self._reply(event, fallback_reply(event.sender_display_name, self.brand))

    # -- free text ---------------------------------------------------------

    async def _handle_wallet(self, event: InboundEvent, address: str) -> str:
        decision = guard(event.is_shared_channel, Intent.WALLET_CANDIDATE, address)
        if decision.deferred:
            logger.info("privacy_deferred", extra={"event": "privacy_deferred", "kind": "wallet", "chat_id": event.chat_id, "user_id": event.sender_id})
            return wallet_privacy_notice(decision.masked_summary or "")

        try:
            request = await self.ledger.submit(
                event.sender_id,
                event.sender_username,
                event.sender_display_name,
                address,
            )
        except LedgerError as exc:
            logger.info("token_request_refused", extra={"event": "token_request_refused", "kind": exc.kind, "user_id": event.sender_id})
            return ledger_error_text(exc)
        return request_submitted_text(request, self.brand)

    async def _handle_bug_report(self, event: InboundEvent, description: str) -> str:
        decision = guard(event.is_shared_channel, Intent.BUG_REPORT, description)
        if decision.deferred:
            logger.info("privacy_deferred", extra={"event": "privacy_deferred", "kind": "bug_report", "chat_id": event.chat_id, "user_id": event.sender_id})
            return bug_privacy_notice(decision.masked_summary or "")

        triage = triage_report(description)
        await self.notifier.notify_admin(
            admin_bug_report_text(event.sender_display_name, event.sender_username, event.sender_id, description, triage),
            event="bug_report",
        )
        logger.info(
            "bug_report_received",
            extra={"event": "bug_report_received", "user_id": event.sender_id, "severity": triage.severity, "category": triage.category},
        )
        return bug_received_text(event.sender_display_name, event.sender_username, description, triage, self.brand)

    # -- commands ----------------------------------------------------------

    async def _handle_command(self, event: InboundEvent, name: str, args: list[str]) -> str:
        name, request_id = split_transition_command(name, args)

        if name in ADMIN_COMMANDS:
            if not self.settings.is_admin(event.sender_id):
                return admin_required_text()
            if event.is_shared_channel:
                return "🔒 Admin commands only work in a direct message."

        if name in TRANSITION_COMMANDS:
            return await self._cmd_transition(event, TRANSITION_COMMANDS[name], request_id)

        handler = self._commands.get(name)
        if handler is None:
            return unknown_command_text()
        return await handler(event, args)

    async def _cmd_start(self, event: InboundEvent, args: list[str]) -> str:
        return welcome_text(event.sender_display_name, self.brand)

    async def _cmd_help(self, event: InboundEvent, args: list[str]) -> str:
        return help_text(is_admin=self.settings.is_admin(event.sender_id))

    async def _cmd_tokens(self, event: InboundEvent, args: list[str]) -> str:
        return tokens_text(event.sender_display_name)

    async def _cmd_report(self, event: InboundEvent, args: list[str]) -> str:
        return report_prompt_text(event.sender_display_name, self.brand)

    async def _cmd_status(self, event: InboundEvent, args: list[str]) -> str:
        return status_text(self.brand)

    async def _cmd_setup(self, event: InboundEvent, args: list[str]) -> str:
        return setup_text(self.brand)

    async def _cmd_rewards(self, event: InboundEvent, args: list[str]) -> str:
        return rewards_text(self.brand)

    async def _cmd_privacy(self, event: InboundEvent, args: list[str]) -> str:
        return privacy_text(self.brand)

    async def _cmd_mystatus(self, event: InboundEvent, args: list[str]) -> str:
        if event.is_shared_channel:
            return "🔒 Ask me for /mystatus in a direct message."
        return my_status_text(self.ledger.find_by_user(event.sender_id))

    async def _cmd_pending(self, event: InboundEvent, args: list[str]) -> str:
        return pending_list_text(self.ledger.list_pending())

    async def _cmd_approved(self, event: InboundEvent, args: list[str]) -> str:
        return approved_list_text(self.ledger.list_approved())

    async def _cmd_stats(self, event: InboundEvent, args: list[str]) -> str:
        return stats_text(self.ledger.stats())

    async def _cmd_generate_distribution(self, event: InboundEvent, args: list[str]) -> str:
        try:
            export = await export_distribution(self.ledger, self.distribution_path)
        except (OSError, asyncio.TimeoutError) as exc:
            logger.error("distribution_export_failed", extra={"event": "distribution_export_failed", "error": str(exc)})
            return "❌ Couldn't write the distribution file. Check the bot logs."
        return distribution_text(export.count, str(export.path) if export.path else None)

    async def _cmd_transition(self, event: InboundEvent, target: RequestStatus, request_id: str | None) -> str:
        if not request_id:
            return f"Usage: /{'approve' if target == RequestStatus.APPROVED else 'reject'} &lt;request id&gt;"
        return await self.review(event.sender_id, target, request_id)

    async def review(self, admin_id: int, target: RequestStatus, request_id: str) -> str:
        """Apply an admin decision and tell the requester. Returns the admin-facing reply."""
        try:
            request = await self.ledger.transition(request_id, target)
        except LedgerError as exc:
            logger.info("review_refused", extra={"event": "review_refused", "kind": exc.kind, "admin_id": admin_id, "request_id": request_id})
            return ledger_error_text(exc)
        logger.info("request_reviewed", extra={"event": "request_reviewed", "admin_id": admin_id, "request_id": request_id, "status": request.status.value})
        await self.notifier.notify_user(request, requester_decision_text(request))
        return transition_done_text(request)
