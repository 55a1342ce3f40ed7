"""
Configuration module with environment-based settings.
Supports: development, staging, production

Values come from the process environment and `.env`; ENVIRONMENT picks the
profile class.
"""
import logging
import os
from functools import lru_cache
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "change-me"
DEFAULT_REFRESH_SECRET = "change-me-refresh"


class BaseConfig(BaseSettings):
    """Settings shared by every profile."""

    APP_NAME: str = "pos-backend"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # WooCommerce REST API (system of record)
    WOO_BASE_URL: str = "http://localhost"
    WOO_CONSUMER_KEY: Optional[str] = None
    WOO_CONSUMER_SECRET: Optional[str] = None
    WOO_TIMEOUT: float = 30.0
    WOO_MAX_RETRIES: int = 2

    # Baserow database API (mirror)
    BASEROW_BASE_URL: str = "https://api.baserow.io/api"
    BASEROW_TOKEN: Optional[str] = None
    BASEROW_ORDERS_TABLE_ID: Optional[str] = None
    BASEROW_CUSTOMERS_TABLE_ID: Optional[str] = None
    BASEROW_TIMEOUT: float = 15.0
    BASEROW_MAX_RETRIES: int = 3

    # Reconciliation jobs
    SYNC_ENABLED: bool = True
    ORDER_SYNC_INTERVAL_SECONDS: int = 300
    CUSTOMER_SYNC_INTERVAL_SECONDS: int = 60
    SYNC_PAGE_SIZE: int = 50

    # Catalog cache (seconds)
    CATEGORY_CACHE_TTL: int = 6 * 60 * 60
    VARIATION_CACHE_TTL: int = 300
    CACHE_SWEEP_INTERVAL: int = 60

    # Single POS operator login
    POS_ADMIN_USERNAME: Optional[str] = None
    POS_ADMIN_PASSWORD: Optional[str] = None

    # Tokens
    SECRET_KEY: str = DEFAULT_SECRET
    REFRESH_SECRET_KEY: str = DEFAULT_REFRESH_SECRET
    ACCESS_TOKEN_TTL_MINUTES: int = 30
    REFRESH_TOKEN_TTL_HOURS: int = 24
    ENABLE_TOKEN_ROTATION: bool = False

    # HTTP surface
    CORS_ORIGINS: Union[List[str], str] = ["*"]
    RATE_LIMIT: str = "120/minute"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, value):
        # CORS_ORIGINS=https://pos.example.com,https://admin.example.com
        if isinstance(value, str) and not value.lstrip().startswith("["):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "prod")

    @property
    def woo_configured(self) -> bool:
        return bool(self.WOO_CONSUMER_KEY and self.WOO_CONSUMER_SECRET)

    @property
    def baserow_configured(self) -> bool:
        return bool(self.BASEROW_TOKEN and self.BASEROW_ORDERS_TABLE_ID and self.BASEROW_CUSTOMERS_TABLE_ID)


class DevelopmentConfig(BaseConfig):
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"
    RATE_LIMIT: str = "1000/minute"


class StagingConfig(BaseConfig):
    ENVIRONMENT: str = "staging"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT: str = "300/minute"


class ProductionConfig(BaseConfig):
    """Production: quiet logs, rotated refresh tokens, real secrets expected."""
    ENVIRONMENT: str = "production"
    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"
    ENABLE_TOKEN_ROTATION: bool = True

    @model_validator(mode="after")
    def warn_on_default_secrets(self):
        if self.SECRET_KEY == DEFAULT_SECRET or self.REFRESH_SECRET_KEY == DEFAULT_REFRESH_SECRET:
            logger.warning("SECRET_KEY / REFRESH_SECRET_KEY are still the defaults; tokens are forgeable")
        return self


PROFILES = {
    "development": DevelopmentConfig,
    "dev": DevelopmentConfig,
    "staging": StagingConfig,
    "stage": StagingConfig,
    "production": ProductionConfig,
    "prod": ProductionConfig,
}


@lru_cache()
def get_settings() -> BaseConfig:
    """Settings for the ENVIRONMENT profile, built once per process."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    return PROFILES.get(env, DevelopmentConfig)()


settings = get_settings()
