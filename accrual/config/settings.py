"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from eth_utils import is_address, to_checksum_address
from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./accrual.db"
    database_echo: bool = False

    # Application
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None

    # Assets
    value_asset_symbol: str = Field(
        default="USDT", min_length=1, max_length=16,
        description="Symbol of the asset deposited and paid out"
    )
    membership_asset_symbol: str = Field(
        default="CV", min_length=1, max_length=16,
        description="Symbol of the asset whose balance grants the boost"
    )
    token_decimals: int = Field(
        default=6, ge=0, le=18,
        description="Decimals of the value asset (amounts are stored in smallest units)"
    )

    # Custody account holding deposits and paying out interest
    custody_address: str = "0x000000000000000000000000000000000000a11c"

    # Total interest paid over the full lock-up, in percent
    rate_short_percent: int = Field(
        default=18, ge=0, le=1000, description="Short tier rate"
    )
    rate_short_boost_percent: int = Field(
        default=23, ge=0, le=1000, description="Short tier boosted rate"
    )
    rate_long_percent: int = Field(
        default=48, ge=0, le=1000, description="Long tier rate"
    )
    # Requires product decision: no boosted rate has been agreed for the long tier
    rate_long_boost_percent: int | None = Field(
        default=None, ge=0, le=1000, description="Long tier boosted rate"
    )

    # Domain separator mixed into every record id
    record_id_domain: str = Field(
        default="accrual.deposit.v1", min_length=1
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

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
                    'Use PostgreSQL for concurrent access.'
                )

        if self.rate_long_boost_percent is None:
            logger.warning(
                'RATE_LONG_BOOST_PERCENT is not set: boosted long lock-up '
                'deposits cannot be withdrawn until it is configured'
            )
        return self

    @field_validator('custody_address')
    @classmethod
    def validate_eth_address(cls, v: str) -> str:
        """Validate Ethereum address format."""
        if not v.startswith('0x') or len(v) != 42 or not is_address(v.lower()):
            raise ValueError(
                f'Invalid Ethereum address: {v}. '
                'Must start with 0x and be 42 characters long.'
            )
        return to_checksum_address(v)

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

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate loguru level name."""
        level = v.upper()
        if level not in {
            'TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL'
        }:
            raise ValueError(f'Invalid log level: {v}')
        return level


# Global settings instance
settings = Settings()
