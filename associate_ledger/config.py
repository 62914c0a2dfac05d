"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Associate loan ledger configuration"""

    # Database configuration
    database_url: str = "sqlite:///associate_ledger.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Business rules configuration
    late_fee_rate: Decimal = Field(Decimal('0.02'), ge=0)  # Charged per late_fee_period_days, prorated
    late_fee_period_days: int = Field(30, gt=0)
    upcoming_window_days: int = Field(30, ge=0)
    loan_number_prefix: str = "LOAN"
    default_payment_method: str = "bank_transfer"

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        case_sensitive = False

    @property
    def late_fee_rate_decimal(self) -> Decimal:
        return Decimal(self.late_fee_rate)

    @property
    def sqlite_path(self) -> str:
        """Filesystem path for sqlite:/// URLs"""
        prefix = "sqlite:///"
        if not self.database_url.startswith(prefix):
            raise ValueError(f"Unsupported database URL: {self.database_url}")
        return self.database_url[len(prefix):] or ":memory:"


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
