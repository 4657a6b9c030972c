from __future__ import annotations

import ipaddress
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_openapi_docs: bool = Field(default=True, alias="ENABLE_OPENAPI_DOCS")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(alias="REDIS_URL")
    celery_broker_url: str = Field(alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(alias="CELERY_RESULT_BACKEND")
    celery_default_queue: str = Field(default="q_normal", alias="CELERY_DEFAULT_QUEUE")

    # Internal endpoints need both the shared token and a client IP inside the allowlist.
    internal_api_token: str = Field(
        default="dev_internal_token_change_me",
        alias="INTERNAL_API_TOKEN",
    )
    internal_api_allowlist: str = Field(
        default="127.0.0.1/32,::1/128",
        alias="INTERNAL_API_ALLOWLIST",
    )
    internal_api_trusted_proxies: str = Field(default="", alias="INTERNAL_API_TRUSTED_PROXIES")

    default_voucher_validity_days: int = Field(default=90, ge=1, alias="DEFAULT_VOUCHER_VALIDITY_DAYS")
    top_products_limit: int = Field(default=5, ge=1, le=100, alias="TOP_PRODUCTS_LIMIT")
    top_products_window_days: int = Field(default=90, ge=1, alias="TOP_PRODUCTS_WINDOW_DAYS")
    top_products_max_redemptions: int = Field(
        default=5000,
        ge=1,
        alias="TOP_PRODUCTS_MAX_REDEMPTIONS",
    )
    threshold_sweep_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        alias="THRESHOLD_SWEEP_INTERVAL_SECONDS",
    )
    threshold_sweep_batch_size: int = Field(default=500, ge=1, alias="THRESHOLD_SWEEP_BATCH_SIZE")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(f"unsupported log level: {value}")
        return normalized

    @field_validator("internal_api_allowlist", "internal_api_trusted_proxies")
    @classmethod
    def _validate_networks(cls, value: str) -> str:
        for part in value.split(","):
            if part.strip():
                ipaddress.ip_network(part.strip(), strict=False)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
