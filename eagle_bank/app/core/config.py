from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Eagle Bank API"
    database_url: str = "sqlite:///eagle_bank.db"
    log_level: str = "INFO"
    store_backend: Literal["sql", "memory"] = "sql"
    sqlite_busy_timeout: float = 5.0

    currency: str = "GBP"
    max_transaction_amount: Decimal = Decimal("10000.00")
    account_number_attempts: int = 10

    jwt_secret: str = "change-me-in-production-use-32-bytes-or-more"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EAGLE_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
