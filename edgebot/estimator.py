"""
Probability estimator for eligible markets.

Derives a "true probability" for an outcome from the volume behind it
relative to the volume behind the other outcomes, then applies a small
fixed uplift that models persistent market inefficiency. This is a
heuristic, not a calibrated model: it is deterministic, bounded to
[0, MAX_PROBABILITY] and non-decreasing in the outcome's volume share.
"""

import logging

from edgebot.models import Market
from edgebot.utils import clamp

# Configure module logger
logger = logging.getLogger(__name__)

INEFFICIENCY_ADJUSTMENT = 0.02
MAX_PROBABILITY = 0.99
NEUTRAL_PROBABILITY = 0.5


def estimate_true_probability(outcome_volume: float, other_volume: float) -> float:
    """
    Estimate the true probability of an outcome from volume skew.

    Args:
        outcome_volume: Volume behind the outcome being estimated
        other_volume: Volume behind all other outcomes

    Returns:
        Estimated probability in [0.0, MAX_PROBABILITY]
    """
    if outcome_volume < 0 or other_volume < 0:
        logger.debug(f"Negative volume ({outcome_volume}, {other_volume}), using neutral baseline")
        baseline = NEUTRAL_PROBABILITY
    elif outcome_volume + other_volume == 0:
        baseline = NEUTRAL_PROBABILITY
    else:
        baseline = outcome_volume / (outcome_volume + other_volume)

    return clamp(baseline * (1 + INEFFICIENCY_ADJUSTMENT), 0.0, MAX_PROBABILITY)


def outcome_volumes(market: Market) -> list[float]:
    """
    Split a market's traded volume across its outcomes.

    Volume behind each outcome is approximated as total volume times the
    outcome's price. Markets with no recorded volume fall back to the prices
    themselves, so the baseline becomes the normalised price share.
    Missing prices count as zero.
    """
    prices = [price if price and price > 0 else 0.0 for price in market.outcome_prices]

    if market.volume > 0:
        return [market.volume * price for price in prices]
    return prices


def estimate_outcome_probabilities(market: Market) -> list[float]:
    """Estimate the true probability of every outcome of a market."""
    volumes = outcome_volumes(market)
    total = sum(volumes)
    return [
        estimate_true_probability(volume, max(total - volume, 0.0))
        for volume in volumes
    ]
