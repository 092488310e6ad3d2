"""
Utility functions for the micro-edge scanner.

This module provides shared helper utilities used across the codebase.
All functions are pure helpers with no domain logic.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

# Configure module logger
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Get the current time as a timezone-aware UTC datetime.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 string into a timezone-aware UTC datetime.

    Naive values are assumed to be UTC. A trailing 'Z' is accepted.

    Args:
        value: Date string from API or database

    Returns:
        Datetime object if parsing succeeds, None otherwise
    """
    if not value or not isinstance(value, str):
        return None

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Could not parse datetime: {value}")
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_json_list(value: Any) -> list:
    """
    Normalize a field that may be a list or a JSON-encoded list.

    Gamma returns fields such as outcomePrices as strings like '["0.4", "0.6"]'.

    Args:
        value: List, JSON string, or None

    Returns:
        Parsed list, or empty list if the value is not list-like
    """
    if isinstance(value, list):
        return value

    if isinstance(value, str) and value.strip():
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            logger.debug(f"Could not decode JSON list: {value[:100]}")
            return []
        return parsed if isinstance(parsed, list) else []

    return []


def clamp(value: float, min_value: float, max_value: float) -> float:
    """
    Clamp a value between minimum and maximum bounds.

    Args:
        value: Value to clamp
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Clamped value between min_value and max_value

    Raises:
        ValueError: If min_value > max_value
    """
    if min_value > max_value:
        raise ValueError(f"min_value ({min_value}) must be <= max_value ({max_value})")

    return max(min_value, min(value, max_value))


def safe_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """
    Safely convert a value to float with a default fallback.

    Handles None, strings, integers, and floats. Returns default on failure.

    Args:
        value: Value to convert (string, int, float, or None)
        default: Default value if conversion fails (default: 0.0)

    Returns:
        Float value or default if conversion fails
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default

    return default


def format_currency(value: float, decimals: int = 0) -> str:
    """
    Format a float value as a currency string.

    Args:
        value: Float value to format
        decimals: Number of decimal places (default: 0)

    Returns:
        Formatted currency string (e.g., "$1,234.56")
    """
    if decimals == 0:
        return f"${value:,.0f}"
    else:
        return f"${value:,.{decimals}f}"
