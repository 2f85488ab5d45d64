from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "faucetbot"
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000

    telegram_bot_token: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    telegram_use_webhook: bool = False
    telegram_webhook_url: str = ""
    telegram_webhook_path: str = "/telegram/webhook"
    telegram_webhook_secret: str = ""

    # single static admin; empty disables admin commands and notices
    admin_user_id: str = Field(default="", alias="ADMIN_USER_ID")

    ledger_path: str = Field(default="data/token-requests.json", alias="LEDGER_PATH")
    ledger_io_timeout_sec: float = Field(default=5.0, alias="LEDGER_IO_TIMEOUT_SEC")
    ledger_retry_attempts: int = Field(default=5, alias="LEDGER_RETRY_ATTEMPTS")
    ledger_retry_base_wait_sec: float = Field(default=1.0, alias="LEDGER_RETRY_BASE_WAIT_SEC")
    ledger_retry_max_wait_sec: float = Field(default=60.0, alias="LEDGER_RETRY_MAX_WAIT_SEC")
    distribution_path: str = Field(default="data/approved-addresses.json", alias="DISTRIBUTION_PATH")

    product_name: str = "SAWAC"
    website_url: str = "https://sawac.io"
    support_email: str = "info@sawac.io"
    github_issues_url: str = "https://github.com/AGBKK/sawac-web/issues"

    def admin_chat_id(self) -> int | None:
        raw = self.admin_user_id.strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def is_admin(self, user_id: int | str | None) -> bool:
        raw = self.admin_user_id.strip()
        if not raw or user_id is None:
            return False
        return str(user_id).strip() == raw

    def ledger_file(self) -> Path:
        return Path(self.ledger_path)

    def distribution_file(self) -> Path:
        return Path(self.distribution_path)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
