from __future__ import annotations

from dataclasses import dataclass, field

SEVERITY_RULES: list[tuple[tuple[str, ...], str, str]] = [
    (("crash", "error", "broken", "not working"), "high", "urgent"),
    (("slow", "performance", "lag"), "medium", "high"),
    (("ui", "design", "looks"), "low", "normal"),
]

CATEGORY_RULES: list[tuple[tuple[str, ...], str, tuple[str, ...]]] = [
    (("wallet", "connect", "transaction"), "wallet-integration", ("Check wallet connection logic", "Verify transaction handling")),
    (("mobile", "phone", "responsive"), "mobile-ux", ("Test on mobile devices", "Check responsive design")),
    (("login", "auth", "sign"), "authentication", ("Review authentication flow", "Check session management")),
    (("token", "swap", "trade"), "trading", ("Verify token contract interactions", "Check swap functionality")),
]

DETAIL_MARKERS = ("steps", "when", "browser")


@dataclass
class BugTriage:
    severity: str = "medium"
    category: str = "general"
    priority: str = "normal"
    estimated_effort: str = "medium"
    confidence: str = "medium"
    suggested_actions: list[str] = field(default_factory=list)


def triage_report(description: str) -> BugTriage:
    """Keyword triage for a free-text bug report. First matching rule wins."""
    text = description.lower()
    out = BugTriage()

    for keywords, severity, priority in SEVERITY_RULES:
        if any(k in text for k in keywords):
            out.severity = severity
            out.priority = priority
            break

    for keywords, category, actions in CATEGORY_RULES:
        if any(k in text for k in keywords):
            out.category = category
            out.suggested_actions.extend(actions)
            break

    if out.severity == "high" or out.category in {"wallet-integration", "authentication"}:
        out.estimated_effort = "high"
    elif out.category == "mobile-ux":
        out.estimated_effort = "medium"
    else:
        out.estimated_effort = "low"

    if len(description) > 100 and any(m in text for m in DETAIL_MARKERS):
        out.confidence = "high"
    elif len(description) < 50:
        out.confidence = "low"

    return out
