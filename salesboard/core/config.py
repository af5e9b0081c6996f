from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_API_URL = "http://localhost:3000/api"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Salesboard Performance Service"
    environment: str = "development"
    api_prefix: str = "/api/v1"
    cors_allow_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    api_url: str = Field(default=DEFAULT_API_URL, alias="API_URL")
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    strict_normalization: bool = Field(default=False, alias="STRICT_NORMALIZATION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def api_base_url(self) -> str:
        base = (self.api_url or "").strip()
        return base.rstrip("/") if base else DEFAULT_API_URL

    @property
    def api_sales_url(self) -> str:
        return f"{self.api_base_url}/sales"

    @property
    def api_orders_url(self) -> str:
        return f"{self.api_base_url}/orders"

    @property
    def api_teams_url(self) -> str:
        return f"{self.api_base_url}/teams"

    @property
    def api_targets_url(self) -> str:
        return f"{self.api_base_url}/targets"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_cors_origins() -> list[str]:
    settings = get_settings()
    return [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
