from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from faucetbot.core.config import Settings
from faucetbot.core.fmt import fmt_handle, fmt_ts, safe_html
from faucetbot.core.nlu import Topic
from faucetbot.db.models import TokenRequest
from faucetbot.services.errors import (
    DuplicateUserError,
    InvalidAddressError,
    InvalidTransitionError,
    LedgerError,
    RequestNotFoundError,
    WalletReusedError,
)
from faucetbot.services.triage import BugTriage

LIST_LIMIT = 30
EXAMPLE_ADDRESS = "0x1234567890123456789012345678901234567890"


@dataclass(frozen=True)
class Brand:
    product: str = "SAWAC"
    website: str = "https://sawac.io"
    email: str = "info@sawac.io"
    issues_url: str = "https://github.com/AGBKK/sawac-web/issues"

    @classmethod
    def from_settings(cls, settings: Settings) -> Brand:
        return cls(
            product=settings.product_name,
            website=settings.website_url,
            email=settings.support_email,
            issues_url=settings.github_issues_url,
        )


# ---------------------------------------------------------------------------
# Informational
# ---------------------------------------------------------------------------

def welcome_text(name: str, brand: Brand) -> str:
    return (
        f"🎉 <b>Welcome to {brand.product} Community Testing!</b>\n\n"
        f"Hi {safe_html(name)}! 👋\n\n"
        "<b>Quick start</b>\n"
        "1. /setup for BSC Testnet wallet instructions\n"
        "2. /tokens to request test tokens\n"
        f"3. Start testing at {brand.website}\n"
        "4. Report findings with /report or on GitHub\n\n"
        "🔒 Send wallet addresses in a direct message, never in the group."
    )


def help_text(is_admin: bool = False) -> str:
    lines = [
        "📋 <b>Available commands</b>\n",
        "/start - Welcome message and setup guide",
        "/help - Show this help message",
        "/tokens - Request test tokens",
        "/mystatus - Check your token request",
        "/setup - BSC Testnet wallet setup",
        "/report - Report a bug or issue",
        "/status - Testing progress",
        "/rewards - Testing rewards",
        "/privacy - How your data is handled",
    ]
    if is_admin:
        lines.extend(
            [
                "\n<b>Admin</b>",
                "/pending - Pending requests",
                "/approved - Approved requests",
                "/stats - Ledger statistics",
                "/approve &lt;id&gt; - Approve a request",
                "/reject &lt;id&gt; - Reject a request",
                "/generate_distribution - Export approved addresses",
            ]
        )
    return "\n".join(lines)


def tokens_text(name: str) -> str:
    return (
        "🪙 <b>Test Token Request</b>\n\n"
        f"Hi {safe_html(name)}!\n\n"
        "1. Reply here with your BSC Testnet wallet address (0x...)\n"
        "2. Wait for approval (usually within 24 hours)\n"
        "3. Check your wallet for the test tokens\n\n"
        "<i>One request per person and per wallet. Testnet tokens have no real value.</i>"
    )


def report_prompt_text(name: str, brand: Brand) -> str:
    return (
        "🐛 <b>Bug Report</b>\n\n"
        f"Hi {safe_html(name)}! Please describe:\n"
        "1. What happened\n"
        "2. Steps to reproduce\n"
        "3. Expected vs actual result\n"
        "4. Browser/device (optional)\n\n"
        "Reply with the description and I'll forward it to the team.\n"
        f"Detailed reports: {brand.issues_url}"
    )


def status_text(brand: Brand) -> str:
    return (
        "📊 <b>Testing Status</b>\n\n"
        "<b>Phase:</b> Community Testing\n"
        f"<b>Website:</b> {brand.website}\n"
        "<b>Network:</b> BSC Testnet\n\n"
        "Get tokens with /tokens, report issues with /report."
    )


def setup_text(brand: Brand) -> str:
    return (
        "🔧 <b>BSC Testnet Wallet Setup</b>\n\n"
        "<b>Network Name:</b> BSC Testnet\n"
        "<b>RPC URL:</b> https://data-seed-prebsc-1-s1.binance.org:8545/\n"
        "<b>Chain ID:</b> 97\n"
        "<b>Currency Symbol:</b> tBNB\n"
        "<b>Block Explorer:</b> https://testnet.bscscan.com\n\n"
        "Test BNB for gas: https://testnet.binance.org/faucet-smart\n\n"
        f"Need help? {brand.email}\n"
        "Once set up, use /tokens to request test tokens."
    )


def rewards_text(brand: Brand) -> str:
    return (
        f"🏆 <b>{brand.product} Testing Rewards</b>\n\n"
        "• Test tokens for every approved tester\n"
        "• Mainnet airdrop eligibility for quality bug reports\n"
        "• Bronze 1-2 reports, Silver 3-5, Gold 5+, Platinum 10+\n\n"
        "<i>Quality reports earn more than quantity.</i>"
    )


def privacy_text(brand: Brand) -> str:
    return (
        "🔒 <b>Privacy</b>\n\n"
        "• Wallet addresses are never processed in group chats\n"
        "• Long bug reports in groups are held back and summarized\n"
        "• Requests are stored only to prevent duplicate claims\n\n"
        f"Questions or deletion requests: {brand.email}"
    )


def unknown_command_text() -> str:
    return "❓ Unknown command. Use /help to see available commands."


def admin_required_text() -> str:
    return "❌ Admin access required."


# ---------------------------------------------------------------------------
# Privacy gate
# ---------------------------------------------------------------------------

def wallet_privacy_notice(masked: str) -> str:
    return (
        "⚠️ <b>Privacy Notice</b>\n\n"
        "You shared a wallet address in a group chat. Send it to me in a "
        "<b>direct message</b> instead so other members can't see it.\n\n"
        f"<b>Address:</b> <code>{safe_html(masked)}</code>\n\n"
        "Nothing was recorded from this message."
    )


def bug_privacy_notice(summary: str) -> str:
    return (
        "⚠️ <b>Privacy Notice</b>\n\n"
        "That's a detailed report for a group chat. Send the full report to me "
        "in a <b>direct message</b> and I'll forward it to the team.\n\n"
        f"<b>Summary:</b> {safe_html(summary)}"
    )


# ---------------------------------------------------------------------------
# Ledger results
# ---------------------------------------------------------------------------

def request_submitted_text(request: TokenRequest, brand: Brand) -> str:
    return (
        "✅ <b>Token Request Submitted</b>\n\n"
        f"<b>Wallet:</b> <code>{safe_html(request.wallet_address)}</code>\n"
        f"<b>Request ID:</b> <code>{request.request_id}</code>\n\n"
        "Your request is waiting for approval. Tokens usually arrive within 24 hours "
        "after approval; I'll message you when it's decided.\n\n"
        f"Start testing at {brand.website}"
    )


def ledger_error_text(exc: LedgerError) -> str:
    if isinstance(exc, InvalidAddressError):
        return (
            "❌ <b>Invalid Wallet Address</b>\n\n"
            "A BSC wallet address starts with <code>0x</code> followed by 40 hex characters.\n\n"
            f"Example: <code>{EXAMPLE_ADDRESS}</code>"
        )
    if isinstance(exc, DuplicateUserError):
        existing = exc.existing
        return (
            "❌ <b>Duplicate Request</b>\n\n"
            f"You have already requested tokens. Status: <b>{existing.status.value}</b>\n\n"
            f"• Wallet: <code>{safe_html(existing.wallet_address)}</code>\n"
            f"• Submitted: {fmt_ts(existing.submitted_at)}\n\n"
            "To change your wallet address, please contact the admin."
        )
    if isinstance(exc, WalletReusedError):
        return (
            "❌ <b>Wallet Already Used</b>\n\n"
            "This wallet address is already attached to a token request.\n"
            "Use a different wallet or contact the admin."
        )
    if isinstance(exc, RequestNotFoundError):
        return f"❌ No request with ID <code>{safe_html(exc.request_id)}</code>. Check /pending."
    if isinstance(exc, InvalidTransitionError):
        return (
            f"❌ Request <code>{exc.request.request_id}</code> is already "
            f"<b>{exc.request.status.value}</b>; it can't become {safe_html(exc.target)}."
        )
    return "❌ Something went wrong with that request. Please try again."


def my_status_text(request: TokenRequest | None) -> str:
    if request is None:
        return "You have no token request yet. Use /tokens to get started."
    lines = [
        "📄 <b>Your Token Request</b>\n",
        f"<b>Status:</b> {request.status.value}",
        f"<b>Wallet:</b> <code>{safe_html(request.wallet_address)}</code>",
        f"<b>Submitted:</b> {fmt_ts(request.submitted_at)}",
    ]
    if request.approved_at:
        lines.append(f"<b>Approved:</b> {fmt_ts(request.approved_at)}")
    if request.rejected_at:
        lines.append(f"<b>Rejected:</b> {fmt_ts(request.rejected_at)}")
    return "\n".join(lines)


def admin_new_request_text(request: TokenRequest) -> str:
    return (
        "🆕 <b>New Token Request</b>\n\n"
        f"<b>User:</b> {safe_html(request.display_name)} ({safe_html(fmt_handle(request.username))})\n"
        f"<b>Wallet:</b> <code>{safe_html(request.wallet_address)}</code>\n"
        f"<b>Request ID:</b> <code>{request.request_id}</code>\n"
        f"<b>Time:</b> {fmt_ts(request.submitted_at)}\n\n"
        f"/approve_{request.request_id}\n"
        f"/reject_{request.request_id}"
    )


def _request_lines(requests: list[TokenRequest], stamp_field: str) -> list[str]:
    lines: list[str] = []
    for idx, req in enumerate(requests[:LIST_LIMIT], start=1):
        stamp = getattr(req, stamp_field)
        lines.append(
            f"{idx}. <b>{safe_html(req.display_name)}</b> ({safe_html(fmt_handle(req.username))})\n"
            f"   Wallet: <code>{safe_html(req.wallet_address)}</code>\n"
            f"   ID: <code>{req.request_id}</code>\n"
            f"   Time: {fmt_ts(stamp)}"
        )
    if len(requests) > LIST_LIMIT:
        lines.append(f"… and {len(requests) - LIST_LIMIT} more")
    return lines


def pending_list_text(requests: list[TokenRequest]) -> str:
    if not requests:
        return "📋 No pending requests."
    lines = [f"📋 <b>Pending Requests ({len(requests)})</b>\n", *_request_lines(requests, "submitted_at")]
    lines.append("\n/approve &lt;id&gt; or /reject &lt;id&gt;")
    return "\n".join(lines)


def approved_list_text(requests: list[TokenRequest]) -> str:
    if not requests:
        return "✅ No approved requests."
    return "\n".join([f"✅ <b>Approved Requests ({len(requests)})</b>\n", *_request_lines(requests, "approved_at")])


def stats_text(stats: dict[str, Any]) -> str:
    lines = [
        "📊 <b>Ledger</b>\n",
        f"Total: <b>{stats.get('total', 0)}</b>",
        f"Pending: <b>{stats.get('pending', 0)}</b>",
        f"Approved: <b>{stats.get('approved', 0)}</b>",
        f"Rejected: <b>{stats.get('rejected', 0)}</b>",
    ]
    if stats.get("degraded"):
        lines.append("\n⚠️ Storage is degraded: latest changes are not on disk yet.")
    return "\n".join(lines)


def transition_done_text(request: TokenRequest) -> str:
    icon = "✅" if request.status.value == "approved" else "🚫"
    return (
        f"{icon} Request <code>{request.request_id}</code> {request.status.value}.\n"
        f"Wallet: <code>{safe_html(request.wallet_address)}</code>"
    )


def requester_decision_text(request: TokenRequest) -> str:
    if request.status.value == "approved":
        return (
            "🎉 <b>Token Request Approved</b>\n\n"
            f"Test tokens will be sent to <code>{safe_html(request.wallet_address)}</code> in the next distribution."
        )
    return (
        "🚫 <b>Token Request Rejected</b>\n\n"
        "Your token request was not approved. Contact the admin if you think this is a mistake."
    )


def distribution_text(count: int, path: str | None) -> str:
    if count == 0:
        return "❌ No approved requests to distribute."
    return (
        "✅ <b>Distribution list generated</b>\n\n"
        f"👥 Addresses: <b>{count}</b>\n"
        f"📁 File: <code>{safe_html(path)}</code>"
    )


# ---------------------------------------------------------------------------
# Bug reports
# ---------------------------------------------------------------------------

def bug_received_text(display_name: str, username: str | None, description: str, triage: BugTriage, brand: Brand) -> str:
    return (
        "🐛 <b>Bug Report Received</b>\n\n"
        f"<b>From:</b> {safe_html(display_name)} ({safe_html(fmt_handle(username))})\n"
        f"<b>Description:</b> {safe_html(description)}\n"
        f"<b>Triage:</b> {triage.severity} severity · {triage.category}\n\n"
        "I've forwarded it to the development team. You may be contacted for details.\n"
        f"Track issues: {brand.issues_url}"
    )


def admin_bug_report_text(display_name: str, username: str | None, user_id: int, description: str, triage: BugTriage) -> str:
    lines = [
        "🐛 <b>New Bug Report</b>\n",
        f"<b>From:</b> {safe_html(display_name)} ({safe_html(fmt_handle(username))}, <code>{user_id}</code>)",
        f"<b>Severity:</b> {triage.severity} · <b>Priority:</b> {triage.priority}",
        f"<b>Category:</b> {triage.category} · <b>Effort:</b> {triage.estimated_effort} · <b>Confidence:</b> {triage.confidence}",
        f"\n{safe_html(description)}",
    ]
    if triage.suggested_actions:
        lines.append("\n<b>Suggested:</b>")
        lines.extend(f"• {safe_html(action)}" for action in triage.suggested_actions)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

def topic_reply(topic: Topic, name: str, brand: Brand) -> str:
    if topic == Topic.GREETING:
        return (
            f"Hi {safe_html(name)}! 👋 Welcome to the {brand.product} community.\n\n"
            "Ask me about staking or rewards, or use /help for commands."
        )
    if topic == Topic.PRODUCT:
        return (
            f"🚀 <b>{brand.product}</b> is a DeFi platform with staking, tiered rewards, "
            f"token vesting and community airdrops.\n\n🌐 {brand.website}"
        )
    if topic == Topic.STAKING:
        return (
            f"💰 <b>{brand.product} Staking</b>\n\n"
            "• Multiple reward types\n• APY based on lock period\n• Early-unstake penalties\n• 2% referral bonus\n\n"
            f"Try it on testnet: {brand.website}"
        )
    if topic == Topic.PURCHASE:
        return (
            f"🛒 <b>How to buy {brand.product}</b>\n\n"
            "1. Open the presale page\n2. Connect MetaMask or a compatible wallet\n3. Pick a tier\n4. Pay with BNB\n\n"
            f"🌐 {brand.website}"
        )
    if topic == Topic.SUPPORT:
        return (
            "🆘 <b>Support</b>\n\n"
            "• /help for commands\n• /report to report a bug\n"
            f"• Email: {brand.email}"
        )
    return (
        "🧪 <b>Testing Program</b>\n\n"
        "• /tokens to request test tokens\n• Test staking, rewards and airdrops\n"
        "• /report bugs to earn rewards"
    )


def fallback_reply(name: str, brand: Brand) -> str:
    return (
        f"Hi {safe_html(name)}! 👋\n\n"
        "I can help with:\n"
        f"• {brand.product} platform questions\n"
        "• Staking and rewards\n"
        "• Test tokens and testing\n\n"
        "Use /help to see all commands."
    )
