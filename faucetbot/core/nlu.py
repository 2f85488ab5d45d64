from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class Intent(str, Enum):
    COMMAND = "command"
    WALLET_CANDIDATE = "wallet_candidate"
    BUG_REPORT = "bug_report"
    CONVERSATIONAL = "conversational"
    FALLBACK = "fallback"


class Topic(str, Enum):
    GREETING = "greeting"
    PRODUCT = "product"
    STAKING = "staking"
    PURCHASE = "purchase"
    SUPPORT = "support"
    TESTING = "testing"


COMMAND_PREFIX = "/"
WALLET_PREFIX = "0x"
WALLET_LENGTH = 42
BUG_REPORT_MIN_CHARS = 20

# order matters: first topic with any matching substring wins
TOPIC_KEYWORDS: list[tuple[Topic, tuple[str, ...]]] = [
    (Topic.GREETING, ("hi", "hello", "hey")),
    (Topic.PRODUCT, ("what is sawac", "tell me about sawac")),
    (Topic.STAKING, ("staking", "stake", "apy")),
    (Topic.PURCHASE, ("how to buy", "buy sawac", "presale")),
    (Topic.SUPPORT, ("help", "support", "problem")),
    (Topic.TESTING, ("test", "testing")),
]


@dataclass
class ParsedMessage:
    intent: Intent
    entities: dict[str, Any] = field(default_factory=dict)
    shared_channel: bool = False


def parse_command(text: str) -> tuple[str, list[str]]:
    """`/Start@my_bot a b` -> ("start", ["a", "b"])."""
    head, *args = text.strip().split()
    name = head[len(COMMAND_PREFIX):].split("@", 1)[0].lower()
    return name, args


def match_topic(text: str) -> Topic | None:
    lower = text.lower()
    for topic, keywords in TOPIC_KEYWORDS:
        if any(k in lower for k in keywords):
            return topic
    return None


def _is_command(text: str) -> bool:
    return text.startswith(COMMAND_PREFIX)


def _is_wallet_candidate(text: str) -> bool:
    return text.startswith(WALLET_PREFIX) and len(text) == WALLET_LENGTH


def _is_bug_report(text: str) -> bool:
    return len(text) > BUG_REPORT_MIN_CHARS


def _command(text: str) -> dict[str, Any]:
    name, args = parse_command(text)
    return {"name": name, "args": args}


Rule = tuple[Intent, Callable[[str], bool], Callable[[str], dict[str, Any]]]

RULES: list[Rule] = [
    (Intent.COMMAND, _is_command, _command),
    (Intent.WALLET_CANDIDATE, _is_wallet_candidate, lambda text: {"address": text}),
    (Intent.BUG_REPORT, _is_bug_report, lambda text: {"text": text}),
    (Intent.CONVERSATIONAL, lambda text: match_topic(text) is not None, lambda text: {"topic": match_topic(text)}),
]


def classify(raw_text: str, is_shared_channel: bool = False) -> ParsedMessage:
    """Route free text. The wallet rule is a coarse shape check only; the ledger
    validates the address strictly."""
    text = (raw_text or "").strip()
    for intent, predicate, build in RULES:
        if predicate(text):
            return ParsedMessage(intent, build(text), shared_channel=is_shared_channel)
    return ParsedMessage(Intent.FALLBACK, shared_channel=is_shared_channel)
