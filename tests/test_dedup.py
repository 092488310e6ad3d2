"""Tests for the recent alert cache."""

import pytest

from edgebot.dedup import RecentAlertCache


class Ticker:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def ticker():
    return Ticker()


def test_recorded_pair_is_seen_until_ttl(ticker):
    cache = RecentAlertCache(ttl_seconds=60, clock=ticker)

    assert not cache.seen("m1", "Yes")
    cache.record("m1", "Yes")
    assert cache.seen("m1", "Yes")
    assert not cache.seen("m1", "No")

    ticker.now += 59
    assert cache.seen("m1", "Yes")

    ticker.now += 1
    assert not cache.seen("m1", "Yes")
    assert len(cache) == 0


def test_recording_again_extends_ttl(ticker):
    cache = RecentAlertCache(ttl_seconds=60, clock=ticker)
    cache.record("m1", "Yes")

    ticker.now += 50
    cache.record("m1", "Yes")
    ticker.now += 50

    assert cache.seen("m1", "Yes")


def test_oldest_entry_is_evicted_at_capacity(ticker):
    cache = RecentAlertCache(ttl_seconds=60, max_entries=2, clock=ticker)

    cache.record("a", "Yes")
    cache.record("b", "Yes")
    cache.record("c", "Yes")

    assert len(cache) == 2
    assert not cache.seen("a", "Yes")
    assert cache.seen("b", "Yes")
    assert cache.seen("c", "Yes")


def test_purge_expired(ticker):
    cache = RecentAlertCache(ttl_seconds=10, clock=ticker)
    cache.record("a", "Yes")
    ticker.now += 5
    cache.record("b", "Yes")
    ticker.now += 6

    assert cache.purge_expired() == 1
    assert len(cache) == 1


def test_empty_cache_is_still_a_cache(ticker):
    cache = RecentAlertCache(ttl_seconds=10, clock=ticker)
    assert len(cache) == 0
    assert cache is not None


@pytest.mark.parametrize("kwargs", [
    {"ttl_seconds": 0},
    {"ttl_seconds": -1},
    {"ttl_seconds": 10, "max_entries": 0},
])
def test_invalid_arguments_are_rejected(kwargs):
    with pytest.raises(ValueError):
        RecentAlertCache(**kwargs)
