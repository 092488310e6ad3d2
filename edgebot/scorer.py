"""
Expected-value scorer for eligible markets.

This module compares the estimator's true probability against the market
price for every priced outcome and turns the ones that clear the minimum EV
into EdgeAlert records. Scoring is deterministic given its inputs.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from edgebot.config import Config
from edgebot.estimator import estimate_outcome_probabilities
from edgebot.models import EdgeAlert, Market
from edgebot.utils import utc_now

# Configure module logger
logger = logging.getLogger(__name__)

Estimator = Callable[[Market], list[float]]


@dataclass
class MarketScore:
    """
    Scoring breakdown for one outcome of a market.

    Attributes:
        market: Market the outcome belongs to
        outcome: Outcome name
        market_price: Market-implied probability
        true_probability: Estimated probability
        expected_value: EV percentage (unrounded)
        flagged: Whether the EV cleared the threshold
    """
    market: Market
    outcome: str
    market_price: float
    true_probability: float
    expected_value: float
    flagged: bool


def has_usable_price(price: Optional[float]) -> bool:
    """A price can be scored only if it is a finite positive number."""
    return price is not None and math.isfinite(price) and price > 0


def calculate_expected_value(market_price: float, true_probability: float) -> float:
    """
    Calculate expected value as a percentage of the market price.

    EV = ((true_probability - market_price) / market_price) * 100

    Args:
        market_price: Market-implied probability, must be finite and > 0
        true_probability: Estimated true probability

    Returns:
        Signed EV percentage

    Raises:
        ValueError: If market_price is not positive
    """
    if not has_usable_price(market_price):
        raise ValueError(f"market_price must be positive, got {market_price}")

    edge = true_probability - market_price
    return (edge / market_price) * 100


def score_outcomes(
    market: Market,
    min_ev: float,
    estimator: Estimator = estimate_outcome_probabilities,
) -> tuple[list[MarketScore], int]:
    """
    Score every priced outcome of a market.

    Outcomes with a missing, non-finite or non-positive price are skipped,
    not scored.

    Returns:
        Tuple of (scores, number of skipped outcomes)
    """
    probabilities = estimator(market)
    scores: list[MarketScore] = []
    skipped = 0

    for outcome, price, true_probability in zip(market.outcomes, market.outcome_prices, probabilities):
        if not has_usable_price(price):
            logger.debug(f"Market {market.id} outcome {outcome}: no usable price, skipping")
            skipped += 1
            continue

        ev = calculate_expected_value(price, true_probability)
        scores.append(MarketScore(
            market=market,
            outcome=outcome,
            market_price=price,
            true_probability=true_probability,
            expected_value=ev,
            flagged=ev >= min_ev,
        ))

    return scores, skipped


def score_market(
    market: Market,
    min_ev: Optional[float] = None,
    now: Optional[datetime] = None,
    estimator: Estimator = estimate_outcome_probabilities,
) -> list[EdgeAlert]:
    """
    Build alerts for the outcomes of a market whose EV clears min_ev.

    Args:
        market: Eligible market to score
        min_ev: Minimum EV percentage. If None, uses Config.MIN_EV.
        now: Detection timestamp. If None, uses the current UTC time.
        estimator: Callable returning one true probability per outcome

    Returns:
        List of EdgeAlert objects (possibly empty)
    """
    if min_ev is None:
        min_ev = Config.MIN_EV
    if now is None:
        now = utc_now()

    scores, _ = score_outcomes(market, min_ev, estimator)
    return [build_alert(score, now) for score in scores if score.flagged]


def build_alert(score: MarketScore, detected_at: datetime) -> EdgeAlert:
    """Turn a flagged score into an EdgeAlert with status active."""
    market = score.market
    return EdgeAlert(
        id=EdgeAlert.make_id(market.id, score.outcome, detected_at),
        market_id=market.id,
        title=market.title,
        outcome=score.outcome,
        expected_value=score.expected_value,
        market_price=score.market_price,
        true_probability=score.true_probability,
        liquidity=market.liquidity,
        timestamp=detected_at,
        slug=market.slug,
    )
