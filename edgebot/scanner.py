"""
Market scanner for fetching active markets from Polymarket.

This module handles the retrieval and normalization of market data from the
Polymarket Gamma API. It performs no business logic - only data fetching and
transformation into structured Python objects.
"""

import logging
import math
from typing import Optional

import requests
from requests.exceptions import RequestException, Timeout, ConnectionError

from edgebot.config import Config
from edgebot.errors import MarketFetchError
from edgebot.models import Market
from edgebot.utils import parse_datetime, parse_json_list, safe_float

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_OUTCOMES = ["Yes", "No"]


def fetch_markets(
    limit: Optional[int] = None,
    raise_on_error: bool = False,
    session: Optional[requests.Session] = None,
) -> list[Market]:
    """
    Fetch active markets from Polymarket Gamma API.

    Retrieves market data from Polymarket and normalizes it into Market
    dataclass objects. Non-2xx responses, timeouts and malformed bodies
    are treated as "no markets this cycle".

    Args:
        limit: Maximum number of markets to fetch. If None, uses Config.MARKETS_FETCH_LIMIT.
        raise_on_error: Raise MarketFetchError instead of returning an empty list.
        session: Optional requests session (used for connection reuse).

    Returns:
        List of Market objects representing active markets. Returns empty list
        on API failure unless raise_on_error is set.

    Raises:
        MarketFetchError: Only when raise_on_error is True.
    """
    if limit is None:
        limit = Config.MARKETS_FETCH_LIMIT

    url = f"{Config.GAMMA_API_URL.rstrip('/')}/markets"
    params = {
        "active": "true",
        "closed": "false",
        "limit": limit,
    }

    logger.info(f"Fetching up to {limit} active markets from Polymarket")
    logger.debug(f"Requesting markets from {url} with params: {params}")

    http = session or requests

    try:
        response = http.get(
            url,
            params=params,
            timeout=Config.API_TIMEOUT,
            headers={
                "Accept": "application/json",
                "User-Agent": "MicroEdgeScanner/1.0"
            }
        )
        response.raise_for_status()
        data = response.json()

    except Timeout:
        message = f"Request to Gamma API timed out after {Config.API_TIMEOUT}s"
        return _fetch_failed(message, raise_on_error)

    except ConnectionError as e:
        return _fetch_failed(f"Connection error while fetching markets: {e}", raise_on_error)

    except RequestException as e:
        if e.response is not None:
            logger.error(f"Response status: {e.response.status_code}")
            logger.debug(f"Response body: {e.response.text[:500]}")
        return _fetch_failed(f"API request failed: {e}", raise_on_error)

    except ValueError as e:
        return _fetch_failed(f"Failed to parse JSON response: {e}", raise_on_error)

    if not isinstance(data, list):
        return _fetch_failed(f"Expected list of markets, got {type(data).__name__}", raise_on_error)

    logger.info(f"Received response with {len(data)} markets")
    markets = normalize_markets(data)
    logger.info(f"Successfully normalized {len(markets)} markets")
    return markets


def _fetch_failed(message: str, raise_on_error: bool) -> list[Market]:
    logger.error(message)
    if raise_on_error:
        raise MarketFetchError(message)
    return []


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    # "NaN" and "Infinity" parse as floats but are not usable numbers
    if value is None or not math.isfinite(value):
        return None
    return value


def normalize_markets(api_data: list[dict]) -> list[Market]:
    """
    Normalize raw API response data into Market dataclass objects.

    Handles missing or malformed fields gracefully by skipping invalid entries
    and logging warnings.

    Args:
        api_data: List of market dictionaries from Polymarket API.

    Returns:
        List of normalized Market objects. Invalid entries are skipped.
    """
    markets: list[Market] = []

    for idx, market_data in enumerate(api_data):
        if not isinstance(market_data, dict):
            logger.warning(f"Skipping market at index {idx}: not an object")
            continue

        market = parse_market(market_data)
        if market:
            markets.append(market)

    return markets


def parse_market(data: dict) -> Optional[Market]:
    """
    Parse a single market dictionary into a Market object.

    Missing prices are kept as None so the scorer can skip that outcome.
    Markets without a usable liquidity figure are dropped; missing volume
    defaults to zero.

    Args:
        data: Dictionary containing market data from API.

    Returns:
        Market object if parsing succeeds, None otherwise.
    """
    market_id = data.get("id")
    if not market_id:
        logger.debug("Market missing 'id' field, skipping")
        return None

    title = data.get("question") or data.get("title") or "Unknown Market"

    outcomes = [str(o) for o in parse_json_list(data.get("outcomes"))] or list(DEFAULT_OUTCOMES)
    raw_prices = parse_json_list(data.get("outcomePrices"))
    prices = [_finite_or_none(safe_float(p, None)) for p in raw_prices]

    if prices and len(prices) != len(outcomes):
        logger.debug(
            f"Market {market_id}: mismatched outcomes ({len(outcomes)}) and prices ({len(prices)})"
        )
        return None

    if not prices:
        prices = [None] * len(outcomes)

    raw_liquidity = data.get("liquidity")
    if raw_liquidity is None:
        raw_liquidity = data.get("liquidityNum")

    liquidity = _finite_or_none(safe_float(raw_liquidity, None))
    if liquidity is None or liquidity < 0:
        logger.debug(f"Market {market_id}: missing or invalid liquidity, skipping")
        return None

    raw_volume = data.get("volume")
    if raw_volume is None:
        raw_volume = data.get("volumeNum")
    volume = _finite_or_none(safe_float(raw_volume, None)) or 0.0

    return Market(
        id=str(market_id),
        title=title,
        outcomes=outcomes,
        outcome_prices=prices,
        liquidity=liquidity,
        volume=volume,
        end_date=parse_datetime(data.get("endDate") or data.get("end_date_iso")),
        slug=data.get("slug") or "",
    )
