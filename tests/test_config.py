from __future__ import annotations

from pathlib import Path

import pytest

from faucetbot.core.config import Settings


@pytest.mark.parametrize(
    "raw,chat_id",
    [
        ("123456", 123456),
        (" 42 ", 42),
        ("", None),
        ("not-a-number", None),
    ],
)
def test_admin_chat_id(raw: str, chat_id: int | None) -> None:
    assert Settings(ADMIN_USER_ID=raw).admin_chat_id() == chat_id


def test_is_admin_compares_as_string() -> None:
    settings = Settings(ADMIN_USER_ID="123456")
    assert settings.is_admin(123456)
    assert settings.is_admin("123456")
    assert not settings.is_admin(654321)
    assert not settings.is_admin(None)


def test_no_admin_configured_means_nobody_is_admin() -> None:
    settings = Settings(ADMIN_USER_ID="")
    assert not settings.is_admin(0)
    assert settings.admin_chat_id() is None


def test_paths_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LEDGER_PATH", str(tmp_path / "l.json"))
    monkeypatch.setenv("LEDGER_RETRY_ATTEMPTS", "9")
    settings = Settings()
    assert settings.ledger_file() == tmp_path / "l.json"
    assert settings.ledger_retry_attempts == 9
    assert settings.distribution_file() == Path("data/approved-addresses.json")
