"""Tests for the expiry/liquidity eligibility gate."""

from datetime import timedelta

from edgebot.config import Config
from edgebot.filters import filter_markets, is_eligible

from conftest import NOW, make_market

WINDOW = timedelta(minutes=60)


def test_market_at_liquidity_floor_expiring_in_an_hour_passes():
    market = make_market(liquidity=5000.0, expires_in=timedelta(hours=1))
    assert is_eligible(market, NOW, WINDOW, 5000.0)


def test_expired_market_is_excluded():
    market = make_market(expires_in=timedelta(minutes=-5))
    assert not is_eligible(market, NOW, WINDOW, 0.0)


def test_market_expiring_now_is_excluded():
    market = make_market(expires_in=timedelta(0))
    assert not is_eligible(market, NOW, WINDOW, 0.0)


def test_market_expiring_beyond_window_is_excluded():
    market = make_market(expires_in=timedelta(minutes=61))
    assert not is_eligible(market, NOW, WINDOW, 0.0)


def test_illiquid_market_is_excluded():
    market = make_market(liquidity=4999.99, expires_in=timedelta(minutes=10))
    assert not is_eligible(market, NOW, WINDOW, 5000.0)


def test_market_without_expiry_is_excluded():
    market = make_market(expires_in=None)
    assert not is_eligible(market, NOW, WINDOW, 0.0)


def test_filter_keeps_only_eligible_markets():
    markets = [
        make_market("keep", liquidity=10000.0, expires_in=timedelta(minutes=15)),
        make_market("expired", liquidity=10000.0, expires_in=timedelta(minutes=-1)),
        make_market("later", liquidity=10000.0, expires_in=timedelta(hours=3)),
        make_market("thin", liquidity=100.0, expires_in=timedelta(minutes=15)),
    ]

    eligible = filter_markets(markets, now=NOW, max_expiry_window=WINDOW, min_liquidity=5000.0)

    assert [market.id for market in eligible] == ["keep"]


def test_filter_does_not_mutate_input():
    markets = [make_market("a"), make_market("b", liquidity=1.0)]
    snapshot = list(markets)

    filter_markets(markets, now=NOW, max_expiry_window=WINDOW, min_liquidity=5000.0)

    assert markets == snapshot


def test_filter_defaults_come_from_config(monkeypatch):
    monkeypatch.setattr(Config, "MAX_EXPIRY_MINUTES", 30)
    monkeypatch.setattr(Config, "MIN_LIQUIDITY_USD", 1000.0)

    markets = [
        make_market("inside", liquidity=1500.0, expires_in=timedelta(minutes=20)),
        make_market("outside", liquidity=1500.0, expires_in=timedelta(minutes=45)),
    ]

    assert [market.id for market in filter_markets(markets, now=NOW)] == ["inside"]


def test_market_with_nan_liquidity_is_excluded():
    market = make_market(liquidity=float("nan"), expires_in=timedelta(minutes=10))
    assert not is_eligible(market, NOW, WINDOW, 5000.0)
