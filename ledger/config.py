"""
Configuration settings for the credits ledger and spend gate.

Values come from the environment (or a local .env file) via pydantic-settings.
"""

import logging
import sys
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "Adnexus Credits"
    api_version: str = "v1"

    # Minimum single deposit, enforced by the calling layer
    min_deposit_amount: Decimal = Decimal("10.00")
    # Floor for any daily budget, enforced by the spend gate
    min_daily_budget: Decimal = Decimal("25.00")

    default_history_limit: int = 50
    admin_history_limit: int = 100

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the root logger with a single console handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    if not any(getattr(h, "_credits_handler", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        handler._credits_handler = True
        root_logger.addHandler(handler)

    return root_logger
