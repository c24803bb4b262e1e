"""Settings for the shop workflow service, read from the environment and ``.env``."""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Autoshop Workflow Service"
    app_version: str = "0.1.0"
    api_prefix: str = "/api/v1"
    debug: bool = False
    cors_origins: List[str] = Field(default_factory=list)

    # Local workflow store
    database_url: str = "sqlite+aiosqlite:///./autoshop.db"

    # Access tokens
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = Field(60, gt=0)

    # Shop rules
    currency_code: str = "LKR"
    min_appointment_minutes: int = Field(30, ge=0)

    # Remote service-of-record
    shop_api_base_url: str = "http://localhost:8080/api/v1"
    shop_api_timeout_seconds: float = Field(10.0, gt=0)
    shop_api_max_retries: int = Field(3, ge=1)
    shop_api_retry_delay_seconds: float = Field(0.5, ge=0)

    @field_validator("currency_code")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.strip().upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
