from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    bot_token: str = Field(..., alias="BOT_TOKEN")
    share_base_url: Optional[str] = Field(None, alias="SHARE_BASE_URL")
    extraction_url: Optional[str] = Field(None, alias="EXTRACTION_URL")
    extraction_timeout: float = Field(30.0, alias="EXTRACTION_TIMEOUT", gt=0)
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def extraction_enabled(self) -> bool:
        return bool(self.extraction_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
