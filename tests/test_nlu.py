from __future__ import annotations

import pytest

from faucetbot.core.nlu import Intent, Topic, classify, match_topic, parse_command

WALLET = "0x" + "ab" * 20


@pytest.mark.parametrize(
    "text,expected_intent,expected_keys",
    [
        ("/start", Intent.COMMAND, ["name", "args"]),
        ("/tokens", Intent.COMMAND, ["name", "args"]),
        ("/approve req_1", Intent.COMMAND, ["name", "args"]),
        (WALLET, Intent.WALLET_CANDIDATE, ["address"]),
        (f"  {WALLET}\n", Intent.WALLET_CANDIDATE, ["address"]),
        # shape check only: non-hex still routes to the wallet path
        ("0x" + "z" * 40, Intent.WALLET_CANDIDATE, ["address"]),
        ("the staking page crashes on load", Intent.BUG_REPORT, ["text"]),
        ("x" * 21, Intent.BUG_REPORT, ["text"]),
        ("hello", Intent.CONVERSATIONAL, ["topic"]),
        ("what is sawac", Intent.CONVERSATIONAL, ["topic"]),
        ("x" * 20, Intent.FALLBACK, []),
        ("ok", Intent.FALLBACK, []),
        ("", Intent.FALLBACK, []),
        ("/", Intent.COMMAND, ["name", "args"]),
    ],
)
def test_classify_routes_by_rule_order(text: str, expected_intent: Intent, expected_keys: list[str]) -> None:
    parsed = classify(text)
    assert parsed.intent == expected_intent
    for key in expected_keys:
        assert key in parsed.entities


def test_command_wins_over_bug_report_length() -> None:
    parsed = classify("/report the swap button does nothing at all")
    assert parsed.intent == Intent.COMMAND
    assert parsed.entities["name"] == "report"


def test_wallet_wins_over_bug_report_length() -> None:
    assert len(WALLET) > 20
    assert classify(WALLET).intent == Intent.WALLET_CANDIDATE


def test_wallet_entity_is_trimmed() -> None:
    assert classify(f"   {WALLET}   ").entities["address"] == WALLET


def test_wrong_length_hex_is_not_wallet() -> None:
    parsed = classify("0x" + "a" * 39)
    assert parsed.intent == Intent.BUG_REPORT


@pytest.mark.parametrize(
    "text,expected",
    [
        ("/start", ("start", [])),
        ("/Start@SawacBot", ("start", [])),
        ("/approve req_1 extra", ("approve", ["req_1", "extra"])),
        ("/approve_req_1", ("approve_req_1", [])),
        ("/", ("", [])),
        ("/   ", ("", [])),
    ],
)
def test_parse_command(text: str, expected: tuple[str, list[str]]) -> None:
    assert parse_command(text) == expected


@pytest.mark.parametrize(
    "text,topic",
    [
        ("hey there", Topic.GREETING),
        ("What is SAWAC", Topic.PRODUCT),
        ("staking apy?", Topic.STAKING),
        ("presale open?", Topic.PURCHASE),
        ("need support", Topic.SUPPORT),
        ("testing", Topic.TESTING),
        ("good morning", None),
    ],
)
def test_match_topic(text: str, topic: Topic | None) -> None:
    assert match_topic(text) == topic


def test_shared_channel_flag_is_carried() -> None:
    assert classify(WALLET, is_shared_channel=True).shared_channel is True
    assert classify(WALLET).shared_channel is False
