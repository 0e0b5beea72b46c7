"""
Application configuration.

All configuration is loaded from environment variables.
Transaction limits are expressed in minor currency units.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "ATM Controller"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./atm.db")

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Per-transaction limits
    MIN_TRANSACTION_AMOUNT: int = int(os.getenv("MIN_TRANSACTION_AMOUNT", "1"))
    MAX_SINGLE_DEPOSIT: int = int(os.getenv("MAX_SINGLE_DEPOSIT", "10000"))
    MAX_SINGLE_WITHDRAWAL: int = int(os.getenv("MAX_SINGLE_WITHDRAWAL", "5000"))

    # Cumulative limits per account per calendar day
    MAX_DAILY_DEPOSIT: int = int(os.getenv("MAX_DAILY_DEPOSIT", "50000"))
    MAX_DAILY_WITHDRAWAL: int = int(os.getenv("MAX_DAILY_WITHDRAWAL", "10000"))


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
