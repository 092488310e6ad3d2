"""
Eligibility filter applied to each fetched snapshot before scoring.

A market is eligible when it expires within the configured window and has
at least the configured liquidity. The filter has no side effects.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from edgebot.config import Config
from edgebot.models import Market
from edgebot.utils import utc_now

# Configure module logger
logger = logging.getLogger(__name__)


def is_eligible(
    market: Market,
    now: datetime,
    max_expiry_window: timedelta,
    min_liquidity: float,
) -> bool:
    """
    Check whether a single market passes the eligibility gate.

    Retains the market iff now < end_date <= now + max_expiry_window
    and liquidity >= min_liquidity.
    """
    if market.end_date is None:
        logger.debug(f"Market {market.id} filtered: no end_date")
        return False

    if market.end_date <= now:
        logger.debug(f"Market {market.id} filtered: already expired")
        return False

    if market.end_date > now + max_expiry_window:
        minutes = (market.end_date - now).total_seconds() / 60.0
        logger.debug(f"Market {market.id} filtered: expires in {minutes:.0f} min")
        return False

    # Written as a negated >= so NaN liquidity is rejected
    if not market.liquidity >= min_liquidity:
        logger.debug(
            f"Market {market.id} filtered: liquidity ${market.liquidity:.0f} < ${min_liquidity:.0f}"
        )
        return False

    return True


def filter_markets(
    markets: list[Market],
    now: Optional[datetime] = None,
    max_expiry_window: Optional[timedelta] = None,
    min_liquidity: Optional[float] = None,
) -> list[Market]:
    """
    Filter markets based on config-driven criteria.

    Args:
        markets: List of Market objects to filter
        now: Reference time. If None, uses the current UTC time.
        max_expiry_window: Expiry window. If None, uses Config.MAX_EXPIRY_MINUTES.
        min_liquidity: Liquidity floor. If None, uses Config.MIN_LIQUIDITY_USD.

    Returns:
        Filtered list of Market objects
    """
    if now is None:
        now = utc_now()
    if max_expiry_window is None:
        max_expiry_window = timedelta(minutes=Config.MAX_EXPIRY_MINUTES)
    if min_liquidity is None:
        min_liquidity = Config.MIN_LIQUIDITY_USD

    filtered = [
        market for market in markets
        if is_eligible(market, now, max_expiry_window, min_liquidity)
    ]

    logger.info(
        f"Filtered {len(markets)} markets to {len(filtered)} "
        f"(expiry <= {max_expiry_window}, liquidity >= ${min_liquidity:,.0f})"
    )
    return filtered
