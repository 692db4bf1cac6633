"""
Settings
Environment-driven configuration for the catalog mirror.
"""

from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # WooCommerce REST API (wc/v3)
    WOOCOMMERCE_STORE_URL: str = ""
    WOOCOMMERCE_CONSUMER_KEY: str = ""
    WOOCOMMERCE_CONSUMER_SECRET: str = ""

    # Supabase (service role bypasses RLS)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    LOG_LEVEL: str = "info"

    # Remote calls
    REQUEST_TIMEOUT: float = 30.0
    PRODUCTS_PAGE_SIZE: int = 50
    CATEGORIES_PAGE_SIZE: int = 100
    FETCH_RETRIES: int = 2
    FETCH_RETRY_DELAY: float = 2.0

    REQUIRED: ClassVar[tuple[str, ...]] = (
        "WOOCOMMERCE_STORE_URL",
        "WOOCOMMERCE_CONSUMER_KEY",
        "WOOCOMMERCE_CONSUMER_SECRET",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
    )

    def missing(self) -> list[str]:
        """Names of required settings that are unset or blank."""
        return [name for name in self.REQUIRED if not str(getattr(self, name)).strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
