from __future__ import annotations

import pytest

from faucetbot.db.models import TokenRequest
from faucetbot.services.notifier import AdminNotifier


def _request() -> TokenRequest:
    return TokenRequest(request_id="req_1", user_id=7, wallet_address="0x" + "1" * 40)


@pytest.mark.asyncio
async def test_notify_admin_passes_send_options() -> None:
    calls = []

    async def _send(chat_id, text, **kwargs):
        calls.append((chat_id, text, kwargs))

    notifier = AdminNotifier(send=_send, admin_chat_id=1)
    assert await notifier.notify_admin("hi", reply_markup="kb") is True
    assert calls == [(1, "hi", {"reply_markup": "kb"})]


@pytest.mark.asyncio
async def test_no_admin_skips_notice() -> None:
    calls = []

    async def _send(chat_id, text, **kwargs):
        calls.append(chat_id)

    notifier = AdminNotifier(send=_send, admin_chat_id=None)
    assert notifier.enabled is False
    assert await notifier.notify_admin("hi") is False
    # requester notices do not depend on an admin being configured
    assert await notifier.notify_user(_request(), "decided") is True
    assert calls == [7]


@pytest.mark.asyncio
async def test_send_failure_is_contained() -> None:
    async def _send(chat_id, text, **kwargs):
        raise RuntimeError("bot was blocked by the user")

    notifier = AdminNotifier(send=_send, admin_chat_id=1)
    assert await notifier.notify_admin("hi") is False
    assert await notifier.notify_user(_request(), "decided") is False
