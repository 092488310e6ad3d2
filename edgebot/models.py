"""
Data models for the micro-edge scanner.

This module defines the core dataclasses used throughout the application
for representing fetched markets, persisted edge alerts, and scan results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class AlertStatus(str, Enum):
    """Lifecycle tag of a persisted alert. Only ACTIVE is set by the scanner."""
    ACTIVE = "active"
    CONVERTED = "converted"
    MISSED = "missed"


@dataclass
class Market:
    """
    Represents a prediction market fetched from Polymarket.

    Markets exist only within one scan cycle and are never persisted.

    Attributes:
        id: Unique market identifier
        title: Market question/title
        outcomes: Outcome names, aligned with outcome_prices
        outcome_prices: Implied probability per outcome (None when missing)
        liquidity: Available liquidity in USD
        volume: Total traded volume in USD
        end_date: Market expiry (timezone-aware UTC)
        slug: URL-friendly identifier
    """
    id: str
    title: str
    outcomes: list[str]
    outcome_prices: list[Optional[float]]
    liquidity: float
    volume: float
    end_date: Optional[datetime]
    slug: str = ""


@dataclass
class EdgeAlert:
    """
    Represents a persisted edge opportunity.

    Attributes:
        id: Unique per market + outcome per detection
        market_id: ID of the market the alert was raised for
        title: Human-readable market description
        outcome: Outcome being flagged
        expected_value: Signed EV percentage
        market_price: Market-implied probability at detection time
        true_probability: Estimated probability at detection time
        liquidity: Market liquidity at detection time
        timestamp: Detection time (UTC)
        status: Lifecycle status
        slug: Market slug, used for links in notifications
    """
    id: str
    market_id: str
    title: str
    outcome: str
    expected_value: float
    market_price: float
    true_probability: float
    liquidity: float
    timestamp: datetime
    status: AlertStatus = AlertStatus.ACTIVE
    slug: str = ""

    @staticmethod
    def make_id(market_id: str, outcome: str, timestamp: datetime) -> str:
        return f"{market_id}:{outcome}:{int(timestamp.timestamp() * 1000)}"

    def to_dict(self) -> dict:
        """Render the alert in the shape served by the HTTP API."""
        return {
            "id": self.id,
            "marketId": self.market_id,
            "title": self.title,
            "outcome": self.outcome,
            "expectedValue": round(self.expected_value, 2),
            "marketPrice": self.market_price,
            "trueProbability": self.true_probability,
            "liquidity": self.liquidity,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }


@dataclass
class ScanResult:
    """
    Summary of a single scan cycle.

    Attributes:
        started_at: Cycle start time
        finished_at: Cycle end time (None while running)
        fetched: Markets returned by the fetcher
        eligible: Markets that passed the eligibility filter
        scored: Outcomes that were scored
        skipped: Outcomes skipped for missing or zero price
        alerts: Outcomes that cleared the EV threshold
        persisted: Alerts successfully written
        failed_writes: Alerts whose write failed
        deduplicated: Alerts suppressed by the dedup cache
        error: Reason the cycle ended early, if any
        persisted_alerts: The alerts written during this cycle
    """
    started_at: datetime
    finished_at: Optional[datetime] = None
    fetched: int = 0
    eligible: int = 0
    scored: int = 0
    skipped: int = 0
    alerts: int = 0
    persisted: int = 0
    failed_writes: int = 0
    deduplicated: int = 0
    error: Optional[str] = None
    persisted_alerts: list[EdgeAlert] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()
