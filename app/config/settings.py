"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.business_constants import (
    DEFAULT_COMMISSION_DEPTH,
    DEFAULT_DOWNLINE_DEPTH,
    HARD_DEPTH_LIMIT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./referral_commissions.db"
    database_echo: bool = False

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/referral.log"

    # Commission calculation
    commission_max_depth: int = Field(
        default=DEFAULT_COMMISSION_DEPTH,
        ge=1,
        le=HARD_DEPTH_LIMIT,
        description="Maximum number of upline levels paid per order",
    )
    commission_quantum: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Smallest monetary unit commissions are rounded down to",
    )
    commission_credit_retries: int = Field(
        default=1,
        ge=0,
        le=3,
        description="Balance credit retries before the ledger entry is rolled back",
    )
    commission_deadline_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Overall time allowed for one order completion",
    )

    # Downline reporting
    downline_max_depth: int = Field(
        default=DEFAULT_DOWNLINE_DEPTH,
        ge=0,
        le=HARD_DEPTH_LIMIT,
        description="Maximum depth a downline report may request",
    )
    downline_node_budget: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of nodes materialized in one tree",
    )
    downline_max_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Concurrent child fetches per tree level",
    )
    downline_fetch_batch_size: int = Field(
        default=100,
        ge=1,
        description="Sponsor codes per child lookup query",
    )
    downline_deadline_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Time allowed for rendering one downline tree",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql+asyncpg:// '
                'or sqlite+aiosqlite://'
            )
        return v

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if self.database_url.startswith('sqlite'):
                logger.warning(
                    'DATABASE_URL points to SQLite in production. '
                    'Balance credits rely on row locks only PostgreSQL provides.'
                )
        return self


# Global settings instance
settings = Settings()
