"""
Scan cycle orchestration.

One cycle walks IDLE -> FETCHING -> FILTERING -> SCORING -> PERSISTING -> IDLE.
Each stage starts only after the previous one completes, and a cycle that is
not idle refuses to start again. Errors are contained to the cycle: they are
logged and recorded on the returned ScanResult, never raised.
"""

import logging
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from edgebot.config import Config
from edgebot.dedup import RecentAlertCache
from edgebot.estimator import estimate_outcome_probabilities
from edgebot.errors import MarketFetchError
from edgebot.filters import filter_markets
from edgebot.models import EdgeAlert, Market, ScanResult
from edgebot.scanner import fetch_markets
from edgebot.scorer import Estimator, has_usable_price, score_market
from edgebot.storage import AlertStore
from edgebot.utils import utc_now

# Configure module logger
logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    SCORING = "scoring"
    PERSISTING = "persisting"


def _default_fetcher() -> list[Market]:
    return fetch_markets(raise_on_error=True)


class ScanCycle:
    """
    Runs the fetch/filter/score/persist pipeline once per call to run().

    Collaborators are injected so a cycle can be exercised without network
    or a shared database.
    """

    def __init__(
        self,
        store: AlertStore,
        fetcher: Callable[[], list[Market]] = _default_fetcher,
        min_ev: Optional[float] = None,
        min_liquidity: Optional[float] = None,
        max_expiry_window: Optional[timedelta] = None,
        dedup_cache: Optional[RecentAlertCache] = None,
        notifier: Optional[Callable[[list[EdgeAlert]], object]] = None,
        estimator: Estimator = estimate_outcome_probabilities,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.fetcher = fetcher
        self.min_ev = Config.MIN_EV if min_ev is None else min_ev
        self.min_liquidity = Config.MIN_LIQUIDITY_USD if min_liquidity is None else min_liquidity
        self.max_expiry_window = max_expiry_window or timedelta(minutes=Config.MAX_EXPIRY_MINUTES)
        self.dedup_cache = dedup_cache
        self.notifier = notifier
        self.estimator = estimator
        self._clock = clock
        self._state = ScanState.IDLE
        self._state_lock = threading.Lock()
        self.last_result: Optional[ScanResult] = None

    @property
    def state(self) -> ScanState:
        return self._state

    def _enter(self, state: ScanState) -> None:
        logger.debug(f"Scan state: {self._state.value} -> {state.value}")
        self._state = state

    def run(self) -> ScanResult:
        """
        Execute one scan cycle.

        Returns:
            ScanResult describing what happened. result.error is set when the
            cycle ended early.
        """
        result = ScanResult(started_at=self._clock())

        with self._state_lock:
            if self._state != ScanState.IDLE:
                logger.warning(f"Scan skipped: previous cycle still {self._state.value}")
                result.error = "cycle already running"
                result.finished_at = self._clock()
                return result
            self._enter(ScanState.FETCHING)

        logger.info("=" * 80)
        logger.info(f"Scan started at {result.started_at.isoformat()}")

        try:
            self._run_stages(result)
        except Exception as e:
            logger.error(f"Scan cycle failed: {e}", exc_info=True)
            result.error = f"unexpected error: {e}"
        finally:
            result.finished_at = self._clock()
            self._enter(ScanState.IDLE)
            self.last_result = result

        logger.info(
            f"Scan complete: {result.duration_seconds:.2f}s | {result.eligible} checked | "
            f"{result.alerts} alerts | {result.persisted} saved | {result.failed_writes} failed"
        )
        logger.info("=" * 80)
        return result

    def _run_stages(self, result: ScanResult) -> None:
        # Fetching
        try:
            markets = self.fetcher()
        except MarketFetchError as e:
            logger.warning(f"Fetch failed, waiting for next cycle: {e}")
            result.error = f"fetch failed: {e}"
            return

        result.fetched = len(markets)
        if not markets:
            logger.warning("No markets returned from API")
            return

        # Filtering
        self._enter(ScanState.FILTERING)
        now = self._clock()
        eligible = filter_markets(
            markets,
            now=now,
            max_expiry_window=self.max_expiry_window,
            min_liquidity=self.min_liquidity,
        )
        result.eligible = len(eligible)

        # Scoring
        self._enter(ScanState.SCORING)
        candidates = self._score(eligible, now, result)

        # Persisting
        self._enter(ScanState.PERSISTING)
        self._persist(candidates, result)

        if result.persisted_alerts and self.notifier is not None:
            try:
                self.notifier(result.persisted_alerts)
            except Exception as e:
                logger.error(f"Alert notification failed: {e}", exc_info=True)

    def _score(self, markets: list[Market], now: datetime, result: ScanResult) -> list[EdgeAlert]:
        candidates: list[EdgeAlert] = []

        for market in markets:
            try:
                alerts = score_market(market, self.min_ev, now, self.estimator)
            except Exception as e:
                logger.warning(f"Skipping market {market.id}: scoring failed: {e}")
                result.skipped += len(market.outcomes)
                continue

            priced = sum(1 for price in market.outcome_prices if has_usable_price(price))
            result.scored += priced
            result.skipped += len(market.outcomes) - priced

            for alert in alerts:
                logger.info(
                    f"EDGE DETECTED (EV: {alert.expected_value:+.2f}%) {market.title[:60]} | "
                    f"{alert.outcome} @ {alert.market_price:.3f} (true {alert.true_probability:.3f}) | "
                    f"Liquidity: ${market.liquidity:,.0f}"
                )
            candidates.extend(alerts)

        result.alerts = len(candidates)
        return candidates

    def _persist(self, candidates: list[EdgeAlert], result: ScanResult) -> None:
        if self.dedup_cache is not None:
            purged = self.dedup_cache.purge_expired()
            if purged:
                logger.debug(f"Purged {purged} expired entries from recent alert cache")

        for alert in candidates:
            if self.dedup_cache is not None and self.dedup_cache.seen(alert.market_id, alert.outcome):
                logger.debug(f"Suppressing repeat alert for {alert.market_id}/{alert.outcome}")
                result.deduplicated += 1
                continue

            try:
                saved = self.store.insert_alert(alert)
            except Exception as e:
                logger.error(f"Error saving alert {alert.id}: {e}", exc_info=True)
                saved = False

            if saved:
                result.persisted += 1
                result.persisted_alerts.append(alert)
                if self.dedup_cache is not None:
                    self.dedup_cache.record(alert.market_id, alert.outcome)
            else:
                result.failed_writes += 1
