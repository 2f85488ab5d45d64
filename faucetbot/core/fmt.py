from __future__ import annotations

import html
from datetime import datetime, timezone


def safe_html(text: str | None) -> str:
    """Escape user-supplied text for Telegram HTML parse mode."""
    return html.escape(text or "", quote=False)


def fmt_ts(ts: datetime | None) -> str:
    """UTC stamp for chat output: 2025-08-05 12:33 UTC"""
    if ts is None:
        return "-"
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def fmt_handle(username: str | None) -> str:
    return f"@{username}" if username else "no username"
