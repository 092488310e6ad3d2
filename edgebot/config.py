"""
Configuration management for the micro-edge scanner.

This module handles all configuration loading from environment variables
and provides type-safe access to configuration values throughout the application.
"""

import os
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


class Config:
    """
    Centralized configuration class for the edge scanner.

    All configuration values are loaded from environment variables with
    sensible defaults where appropriate. Scoring thresholds are supplied
    here and passed into the scan cycle, never hardcoded in the scoring logic.
    """

    # Polymarket Configuration
    GAMMA_API_URL: str = os.getenv(
        "GAMMA_API_URL",
        "https://gamma-api.polymarket.com"
    )
    MARKETS_FETCH_LIMIT: int = int(os.getenv("MARKETS_FETCH_LIMIT", "100"))

    # Scoring Criteria
    MIN_EV: float = float(os.getenv("MIN_EV", "3.0"))
    MIN_LIQUIDITY_USD: float = float(os.getenv("MIN_LIQUIDITY_USD", "10000.0"))
    MAX_EXPIRY_MINUTES: int = int(os.getenv("MAX_EXPIRY_MINUTES", "1440"))

    # Request Timeouts (seconds)
    API_TIMEOUT: int = int(os.getenv("API_TIMEOUT", "15"))
    DB_TIMEOUT: float = float(os.getenv("DB_TIMEOUT", "10"))

    # Database Configuration
    DB_PATH: Path = Path(os.getenv("DB_PATH", "data/edges.db"))

    # Scheduler Configuration
    SCAN_INTERVAL_SECONDS: int = int(os.getenv("SCAN_INTERVAL_SECONDS", "60"))
    SCHEDULER_TIMEZONE: str = os.getenv("SCHEDULER_TIMEZONE", "UTC")
    ALERT_DEDUP_TTL_SECONDS: int = int(os.getenv("ALERT_DEDUP_TTL_SECONDS", "0"))

    # Reader / API Configuration
    ALERTS_DEFAULT_LIMIT: int = int(os.getenv("ALERTS_DEFAULT_LIMIT", "20"))
    METRICS_WINDOW_DAYS: int = int(os.getenv("METRICS_WINDOW_DAYS", "30"))
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "5001"))

    # Telegram Configuration (optional)
    TELEGRAM_BOT_TOKEN: Optional[str] = os.getenv("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID: Optional[str] = os.getenv("TELEGRAM_CHAT_ID")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[Path] = Path(os.getenv("LOG_FILE")) if os.getenv("LOG_FILE") else None

    @classmethod
    def validate(cls) -> tuple[bool, list[str]]:
        """
        Validate configuration ranges.

        Returns:
            tuple: (is_valid, list_of_errors)
        """
        errors: list[str] = []

        if cls.MARKETS_FETCH_LIMIT < 1:
            errors.append("MARKETS_FETCH_LIMIT must be at least 1")

        if cls.MIN_LIQUIDITY_USD < 0:
            errors.append("MIN_LIQUIDITY_USD cannot be negative")

        if cls.MAX_EXPIRY_MINUTES < 1:
            errors.append("MAX_EXPIRY_MINUTES must be at least 1")

        if cls.SCAN_INTERVAL_SECONDS < 1:
            errors.append("SCAN_INTERVAL_SECONDS must be at least 1")

        if cls.API_TIMEOUT <= 0:
            errors.append("API_TIMEOUT must be positive")

        if cls.DB_TIMEOUT <= 0:
            errors.append("DB_TIMEOUT must be positive")

        if cls.ALERT_DEDUP_TTL_SECONDS < 0:
            errors.append("ALERT_DEDUP_TTL_SECONDS cannot be negative")

        if cls.ALERTS_DEFAULT_LIMIT < 1:
            errors.append("ALERTS_DEFAULT_LIMIT must be at least 1")

        return (len(errors) == 0, errors)

    @classmethod
    def ensure_directories(cls) -> None:
        """
        Ensure all required directories exist.

        Creates directories for the database and logs if they don't exist.
        """
        cls.DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        if cls.LOG_FILE:
            cls.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
