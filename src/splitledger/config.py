from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    currency_symbol: str = Field("₹", alias="CURRENCY_SYMBOL")
    max_amount: Decimal = Field(Decimal("10000000"), alias="MAX_AMOUNT", gt=0)
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def max_amount_cents(self) -> int:
        return int(self.max_amount * 100)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
