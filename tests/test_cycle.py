"""End-to-end tests for one scan cycle."""

import sqlite3
from datetime import timedelta

import pytest
import requests

from edgebot.cycle import ScanCycle, ScanState
from edgebot.dedup import RecentAlertCache
from edgebot.errors import MarketFetchError
from edgebot.models import AlertStatus
from edgebot.reader import AlertReader
from edgebot.storage import AlertStore

from conftest import make_market

ESTIMATES = {
    "edge": [0.52, 0.48],
    "overpriced": [0.69, 0.30],
    "late": [0.9, 0.1],
    "thin": [0.9, 0.1],
}


def table_estimator(market):
    return ESTIMATES[market.id]


def snapshot(now):
    return [
        make_market("edge", prices=(0.48, 0.52), liquidity=5000.0, expires_in=timedelta(hours=1), now=now),
        make_market("overpriced", prices=(0.70, 0.30), liquidity=20000.0, now=now),
        make_market("late", prices=(0.40, 0.60), liquidity=20000.0, expires_in=timedelta(hours=5), now=now),
        make_market("thin", prices=(0.40, 0.60), liquidity=100.0, now=now),
    ]


def build_cycle(store, clock, fetcher=None, **kwargs):
    options = dict(
        min_ev=3.0,
        min_liquidity=5000.0,
        max_expiry_window=timedelta(minutes=60),
        estimator=table_estimator,
        clock=clock,
    )
    options.update(kwargs)
    return ScanCycle(store=store, fetcher=fetcher or (lambda: snapshot(clock())), **options)


def test_cycle_persists_only_eligible_positive_edges(store, clock):
    result = build_cycle(store, clock).run()

    assert result.ok
    assert result.fetched == 4
    assert result.eligible == 2
    assert result.scored == 4
    assert result.alerts == 1
    assert result.persisted == 1

    [alert] = store.fetch_alerts()
    assert alert.market_id == "edge"
    assert alert.outcome == "Yes"
    assert alert.status == AlertStatus.ACTIVE
    assert alert.to_dict()["expectedValue"] == 8.33
    assert alert.timestamp == clock.now


def test_cycle_returns_to_idle(store, clock):
    cycle = build_cycle(store, clock)
    cycle.run()
    assert cycle.state == ScanState.IDLE
    assert cycle.last_result is not None


@pytest.mark.parametrize("error", [
    MarketFetchError("Connection error while fetching markets"),
    requests.ConnectionError("network unreachable"),
])
def test_fetch_failure_ends_cycle_and_keeps_old_alerts(store, clock, error):
    build_cycle(store, clock).run()
    clock.advance(minutes=1)

    def failing_fetcher():
        raise error

    cycle = build_cycle(store, clock, fetcher=failing_fetcher)
    result = cycle.run()

    assert not result.ok
    assert result.persisted == 0
    assert cycle.state == ScanState.IDLE

    alerts = AlertReader(store, clock=clock).list_alerts(limit=10)
    assert [alert.market_id for alert in alerts] == ["edge"]


def test_empty_snapshot_is_not_an_error(store, clock):
    result = build_cycle(store, clock, fetcher=lambda: []).run()

    assert result.ok
    assert result.fetched == 0
    assert store.count_alerts() == 0


def test_markets_without_price_are_skipped(store, clock):
    ESTIMATES["unpriced"] = [0.9, 0.9]
    try:
        markets = [make_market("unpriced", prices=(0.0, None), now=clock())]
        result = build_cycle(store, clock, fetcher=lambda: markets).run()
    finally:
        del ESTIMATES["unpriced"]

    assert result.ok
    assert result.skipped == 2
    assert result.alerts == 0


class FlakyStore(AlertStore):
    """Fails every write for one market."""

    def __init__(self, *args, bad_market_id, **kwargs):
        super().__init__(*args, **kwargs)
        self.bad_market_id = bad_market_id

    def insert_alert(self, alert):
        if alert.market_id == self.bad_market_id:
            raise sqlite3.OperationalError("disk I/O error")
        return super().insert_alert(alert)


def test_failed_write_does_not_abort_cycle(tmp_path, clock):
    store = FlakyStore(db_path=tmp_path / "flaky.db", bad_market_id="first")
    ESTIMATES.update(first=[0.52, 0.48], second=[0.52, 0.48])
    try:
        markets = [
            make_market("first", prices=(0.48, 0.52), now=clock()),
            make_market("second", prices=(0.48, 0.52), now=clock()),
        ]
        result = build_cycle(store, clock, fetcher=lambda: markets).run()
    finally:
        del ESTIMATES["first"], ESTIMATES["second"]

    assert result.ok
    assert result.alerts == 2
    assert result.failed_writes == 1
    assert result.persisted == 1
    assert [alert.market_id for alert in store.fetch_alerts()] == ["second"]


def test_cycle_refuses_to_overlap(store, clock):
    inner_results = []

    def reentrant_fetcher():
        inner_results.append(cycle.run())
        return snapshot(clock())

    cycle = build_cycle(store, clock, fetcher=reentrant_fetcher)
    outer = cycle.run()

    assert outer.ok
    assert outer.persisted == 1
    assert inner_results[0].error == "cycle already running"
    assert inner_results[0].persisted == 0
    assert store.count_alerts() == 1


def test_persisting_opportunity_is_recorded_every_cycle(store, clock):
    cycle = build_cycle(store, clock)

    cycle.run()
    clock.advance(minutes=1)
    cycle.run()

    assert store.count_alerts() == 2


def test_dedup_cache_suppresses_repeats_within_ttl(store, clock):
    ticks = {"now": 0.0}
    cache = RecentAlertCache(ttl_seconds=300, clock=lambda: ticks["now"])
    cycle = build_cycle(store, clock, dedup_cache=cache)

    first = cycle.run()
    clock.advance(minutes=1)
    ticks["now"] += 60
    second = cycle.run()
    clock.advance(minutes=10)
    ticks["now"] += 600
    third = cycle.run()

    assert first.persisted == 1
    assert second.persisted == 0
    assert second.deduplicated == 1
    assert third.persisted == 1
    assert store.count_alerts() == 2


def test_notifier_receives_new_alerts(store, clock):
    received = []
    result = build_cycle(store, clock, notifier=received.append).run()

    assert received == [result.persisted_alerts]
    assert received[0][0].market_id == "edge"


def test_notifier_failure_is_contained(store, clock):
    def broken_notifier(alerts):
        raise RuntimeError("telegram down")

    result = build_cycle(store, clock, notifier=broken_notifier).run()

    assert result.ok
    assert result.persisted == 1


def test_market_whose_scoring_fails_is_skipped(store, clock):
    def broken_estimator(market):
        raise ZeroDivisionError("boom")

    result = build_cycle(store, clock, estimator=broken_estimator).run()

    assert result.ok
    assert result.alerts == 0
    assert result.skipped == 4


def test_unexpected_error_ends_cycle_without_raising(store, clock):
    cycle = build_cycle(store, clock, fetcher=lambda: ["not a market"])

    result = cycle.run()

    assert not result.ok
    assert result.error.startswith("unexpected error")
    assert result.finished_at is not None
    assert cycle.state == ScanState.IDLE
    assert cycle.last_result is result
    assert store.count_alerts() == 0


def test_expired_dedup_entries_are_purged_each_cycle(store, clock):
    ticks = {"now": 0.0}
    cache = RecentAlertCache(ttl_seconds=300, clock=lambda: ticks["now"])
    cycle = build_cycle(store, clock, dedup_cache=cache)

    cycle.run()
    assert len(cache) == 1

    ticks["now"] += 600
    clock.advance(minutes=10)
    without_edge = build_cycle(store, clock, dedup_cache=cache, fetcher=lambda: snapshot(clock())[1:])
    result = without_edge.run()

    assert result.alerts == 0
    assert len(cache) == 0
