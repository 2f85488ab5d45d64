from __future__ import annotations

from datetime import datetime, timezone

from faucetbot.bot.templates import (
    LIST_LIMIT,
    Brand,
    admin_new_request_text,
    bug_received_text,
    distribution_text,
    ledger_error_text,
    my_status_text,
    pending_list_text,
    stats_text,
    wallet_privacy_notice,
)
from faucetbot.core.fmt import fmt_handle, fmt_ts
from faucetbot.db.models import RequestStatus, TokenRequest
from faucetbot.services.errors import InvalidTransitionError, RequestNotFoundError
from faucetbot.services.triage import triage_report

WALLET = "0x1234567890abcdef1234567890abcdef12345678"


def _request(idx: int = 1, **overrides) -> TokenRequest:
    data = {
        "request_id": f"req_{idx}",
        "user_id": idx,
        "username": "alice",
        "display_name": "Alice",
        "wallet_address": WALLET,
        "submitted_at": datetime(2025, 8, 5, 12, 33, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return TokenRequest(**data)


def test_user_text_is_escaped() -> None:
    text = admin_new_request_text(_request(display_name="<b>x</b> & co"))
    assert "&lt;b&gt;x&lt;/b&gt; &amp; co" in text
    assert "<b>x</b>" not in text


def test_admin_notice_carries_review_commands() -> None:
    text = admin_new_request_text(_request())
    assert "/approve_req_1" in text
    assert "/reject_req_1" in text
    assert "2025-08-05 12:33 UTC" in text


def test_privacy_notice_shows_only_masked_value() -> None:
    text = wallet_privacy_notice("0x1234...5678")
    assert "0x1234...5678" in text
    assert WALLET not in text


def test_pending_list_is_capped() -> None:
    requests = [_request(i) for i in range(LIST_LIMIT + 5)]
    text = pending_list_text(requests)
    assert f"Pending Requests ({LIST_LIMIT + 5})" in text
    assert "… and 5 more" in text
    assert f"req_{LIST_LIMIT + 4}" not in text


def test_error_texts() -> None:
    assert "req_x" in ledger_error_text(RequestNotFoundError("req_x"))
    approved = _request(status=RequestStatus.APPROVED)
    text = ledger_error_text(InvalidTransitionError(approved, RequestStatus.REJECTED))
    assert "already <b>approved</b>" in text
    assert "rejected" in text


def test_my_status_lists_decision_time() -> None:
    text = my_status_text(
        _request(status=RequestStatus.APPROVED, approved_at=datetime(2025, 8, 6, 9, 0, tzinfo=timezone.utc))
    )
    assert "Approved:</b> 2025-08-06 09:00 UTC" in text


def test_stats_flags_degraded_storage() -> None:
    assert "degraded" not in stats_text({"total": 1, "pending": 1, "degraded": False})
    assert "degraded" in stats_text({"total": 1, "pending": 1, "degraded": True})


def test_distribution_text() -> None:
    assert distribution_text(0, None) == "❌ No approved requests to distribute."
    assert "data/approved-addresses.json" in distribution_text(3, "data/approved-addresses.json")


def test_bug_received_mentions_triage() -> None:
    text = bug_received_text("Alice", None, "swap is broken", triage_report("swap is broken"), Brand())
    assert "high severity" in text
    assert "no username" in text


def test_fmt_helpers() -> None:
    assert fmt_ts(None) == "-"
    assert fmt_ts(datetime(2025, 1, 2, 3, 4)) == "2025-01-02 03:04 UTC"
    assert fmt_handle("bob") == "@bob"
    assert fmt_handle(None) == "no username"
