"""
Alert reader: the read path consumed by the HTTP API and the CLI.

Every operation degrades to an empty or zeroed result when the store is
unavailable, so callers always receive best-available data.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from edgebot.config import Config
from edgebot.errors import StoreUnavailableError
from edgebot.models import AlertStatus, EdgeAlert
from edgebot.storage import AlertStore
from edgebot.utils import clamp, utc_now

# Configure module logger
logger = logging.getLogger(__name__)

MAX_ALERTS_LIMIT = 100
MAX_WINDOW_DAYS = 3650


def _percent(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def empty_metrics() -> dict:
    return {
        "alertsThisMonth": 0,
        "avgEV": 0.0,
        "hitRate": 0.0,
        "conversion": 0.0,
        "activeAlerts": 0,
        "totalAlerts": 0,
        "windowDays": 0,
    }


def empty_backtest(days: int) -> dict:
    return {
        "days": days,
        "totalOpportunities": 0,
        "resolved": 0,
        "hits": 0,
        "misses": 0,
        "hitRate": 0.0,
        "avgEV": 0.0,
        "avgConvertedEV": 0.0,
    }


class AlertReader:
    """
    Read-only view over the alert store.

    Attributes:
        store: AlertStore to query
    """

    def __init__(
        self,
        store: AlertStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self._clock = clock

    def list_alerts(self, limit: Optional[int] = None) -> list[EdgeAlert]:
        """
        Return the most recent active alerts, newest first.

        Args:
            limit: Maximum alerts to return, clamped to [1, MAX_ALERTS_LIMIT].
                If None, uses Config.ALERTS_DEFAULT_LIMIT.

        Returns:
            List of active EdgeAlert objects, empty if the store is unavailable
        """
        if limit is None:
            limit = Config.ALERTS_DEFAULT_LIMIT
        limit = int(clamp(limit, 1, MAX_ALERTS_LIMIT))

        try:
            return self.store.fetch_alerts(status=AlertStatus.ACTIVE, limit=limit)
        except StoreUnavailableError as e:
            logger.warning(f"Alert list unavailable, returning empty list: {e}")
            return []

    def get_metrics(self, window_days: Optional[int] = None) -> dict:
        """
        Aggregate alert metrics over a trailing window.

        hitRate is converted / (converted + missed); conversion is
        converted / all alerts in the window. Both are percentages.

        Args:
            window_days: Trailing window in days, clamped to [1, MAX_WINDOW_DAYS].
                If None, uses Config.METRICS_WINDOW_DAYS.

        Returns:
            Metrics dictionary, zeroed if the store is unavailable
        """
        if window_days is None:
            window_days = Config.METRICS_WINDOW_DAYS
        window_days = int(clamp(window_days, 1, MAX_WINDOW_DAYS))

        since = self._clock() - timedelta(days=window_days)

        try:
            counts = self.store.status_counts(since=since)
            avg_ev = self.store.average_ev(since=since)
            total_alerts = self.store.count_alerts()
        except StoreUnavailableError as e:
            logger.warning(f"Metrics unavailable, returning zeroed metrics: {e}")
            return empty_metrics()

        in_window = sum(counts.values())
        converted = counts[AlertStatus.CONVERTED]
        resolved = converted + counts[AlertStatus.MISSED]

        return {
            "alertsThisMonth": in_window,
            "avgEV": round(avg_ev, 2),
            "hitRate": round(_percent(converted, resolved), 2),
            "conversion": round(_percent(converted, in_window), 2),
            "activeAlerts": counts[AlertStatus.ACTIVE],
            "totalAlerts": total_alerts,
            "windowDays": window_days,
        }

    def run_backtest(self, days: int = 30) -> dict:
        """
        Report how past alerts resolved over a trailing window.

        Args:
            days: Trailing window in days, clamped to [1, MAX_WINDOW_DAYS]

        Returns:
            Backtest report dictionary, zeroed if the store is unavailable
        """
        days = int(clamp(int(days), 1, MAX_WINDOW_DAYS))
        since = self._clock() - timedelta(days=days)

        logger.info(f"Running backtest for last {days} days")

        try:
            counts = self.store.status_counts(since=since)
            avg_ev = self.store.average_ev(since=since)
            avg_converted_ev = self.store.average_ev(status=AlertStatus.CONVERTED, since=since)
        except StoreUnavailableError as e:
            logger.warning(f"Backtest unavailable, returning zeroed report: {e}")
            return empty_backtest(days)

        hits = counts[AlertStatus.CONVERTED]
        misses = counts[AlertStatus.MISSED]
        resolved = hits + misses
        hit_rate = _percent(hits, resolved)

        logger.info(
            f"Backtest ({days} days): {sum(counts.values())} opportunities, "
            f"{hits}/{resolved} resolved hits, hit rate {hit_rate:.1f}%"
        )

        return {
            "days": days,
            "totalOpportunities": sum(counts.values()),
            "resolved": resolved,
            "hits": hits,
            "misses": misses,
            "hitRate": round(hit_rate, 2),
            "avgEV": round(avg_ev, 2),
            "avgConvertedEV": round(avg_converted_ev, 2),
        }
