"""Shared fixtures for the edge scanner tests."""

from datetime import datetime, timedelta, timezone

import pytest

from edgebot.models import AlertStatus, EdgeAlert, Market
from edgebot.storage import AlertStore

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return AlertStore(db_path=tmp_path / "edges.db", timeout=1)


def make_market(
    market_id: str = "m1",
    prices=(0.48, 0.52),
    liquidity: float = 20000.0,
    volume: float = 0.0,
    expires_in: timedelta = timedelta(minutes=30),
    outcomes=("Yes", "No"),
    now: datetime = NOW,
) -> Market:
    return Market(
        id=market_id,
        title=f"Will {market_id} resolve YES?",
        outcomes=list(outcomes),
        outcome_prices=list(prices),
        liquidity=liquidity,
        volume=volume,
        end_date=now + expires_in if expires_in is not None else None,
        slug=f"{market_id}-slug",
    )


def make_alert(
    index: int,
    status: AlertStatus = AlertStatus.ACTIVE,
    detected_at: datetime = NOW,
    ev: float = 5.0,
) -> EdgeAlert:
    market_id = f"market-{index}"
    return EdgeAlert(
        id=EdgeAlert.make_id(market_id, "Yes", detected_at),
        market_id=market_id,
        title=f"Market {index}",
        outcome="Yes",
        expected_value=ev,
        market_price=0.48,
        true_probability=0.52,
        liquidity=12000.0,
        timestamp=detected_at,
        status=status,
    )
