"""
Main orchestration module for the micro-edge scanner.

This module wires the scan pipeline together and provides the CLI:
1. Fetch active markets from Polymarket
2. Filter by expiry window and liquidity
3. Estimate true probabilities and score EV
4. Persist alerts that clear the threshold
5. Optionally notify Telegram and serve the read API
"""

import argparse
import json
import logging
import signal
import sys
import time
from datetime import timedelta
from typing import Optional

from edgebot.api import run_server
from edgebot.config import Config
from edgebot.cycle import ScanCycle
from edgebot.dedup import RecentAlertCache
from edgebot.models import ScanResult
from edgebot.reader import AlertReader
from edgebot.scheduler import Scheduler
from edgebot.storage import AlertStore
from edgebot.telegram_notifier import is_configured as telegram_configured, send_alerts


# Configure logging
def setup_logging() -> None:
    """Configure logging for the application."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_level = getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if Config.LOG_FILE:
        Config.ensure_directories()
        handlers.append(logging.FileHandler(Config.LOG_FILE))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers
    )

    # APScheduler logs every job submission at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def build_scan_cycle(store: Optional[AlertStore] = None) -> ScanCycle:
    """
    Build a scan cycle from configuration.

    Args:
        store: AlertStore to write to. If None, one is opened at Config.DB_PATH.

    Returns:
        Configured ScanCycle
    """
    dedup_cache = None
    if Config.ALERT_DEDUP_TTL_SECONDS > 0:
        dedup_cache = RecentAlertCache(ttl_seconds=Config.ALERT_DEDUP_TTL_SECONDS)
        logger.info(f"Alert dedup enabled ({Config.ALERT_DEDUP_TTL_SECONDS}s window)")

    return ScanCycle(
        store=store or AlertStore(),
        min_ev=Config.MIN_EV,
        min_liquidity=Config.MIN_LIQUIDITY_USD,
        max_expiry_window=timedelta(minutes=Config.MAX_EXPIRY_MINUTES),
        dedup_cache=dedup_cache,
        notifier=send_alerts if telegram_configured() else None,
    )


def log_startup_banner() -> None:
    logger.info("=" * 80)
    logger.info("Micro-Edge Scanner starting")
    logger.info(
        f"Criteria: EV >= {Config.MIN_EV}% | Liquidity >= ${Config.MIN_LIQUIDITY_USD:,.0f} | "
        f"Expiry <= {Config.MAX_EXPIRY_MINUTES} min"
    )
    logger.info(f"Scan interval: {Config.SCAN_INTERVAL_SECONDS}s")
    logger.info(f"Database: {Config.DB_PATH}")
    logger.info("=" * 80)


def main() -> int:
    """
    Main entry point for the edge scanner.

    Supports four modes:
    - Single run: Execute one scan cycle and exit
    - Scheduled: Run scan cycles at a fixed interval
    - Serve: Run the read API (optionally alongside the scheduler)
    - Report: Print metrics or a backtest report and exit

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Polymarket Micro-Edge Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run one scan cycle
  python -m edgebot.main

  # Scan every 60 seconds (SCAN_INTERVAL_SECONDS)
  python -m edgebot.main --schedule

  # Scan every 30 seconds and serve the API
  python -m edgebot.main --schedule --interval 30 --serve

  # Hit-rate report over the last 7 days
  python -m edgebot.main --backtest 7
        """
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Run in scheduled mode (continuous execution at intervals)"
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between scan cycles (overrides SCAN_INTERVAL_SECONDS config)"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Serve the alerts/metrics/backtest HTTP API"
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Print alert metrics and exit"
    )
    parser.add_argument(
        "--backtest",
        type=int,
        metavar="DAYS",
        default=None,
        help="Print a hit-rate report over the last DAYS days and exit"
    )

    args = parser.parse_args()

    setup_logging()

    is_valid, errors = Config.validate()
    if not is_valid:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        return 1

    Config.ensure_directories()

    if args.metrics or args.backtest is not None:
        reader = AlertReader(AlertStore())
        report = reader.run_backtest(args.backtest) if args.backtest is not None else reader.get_metrics()
        print(json.dumps(report, indent=2))
        return 0

    if args.schedule:
        return _run_scheduled_mode(args.interval, serve=args.serve)

    if args.serve:
        run_server()
        return 0

    return _run_single_mode()


def _run_single_mode() -> int:
    """
    Run one scan cycle and exit.

    Returns:
        Exit code (0 for success, 1 if the cycle ended early)
    """
    log_startup_banner()

    try:
        result: ScanResult = build_scan_cycle().run()
    except KeyboardInterrupt:
        logger.info("Scan interrupted by user")
        return 130

    if not result.ok:
        logger.error(f"Scan ended early: {result.error}")
        return 1

    return 0


def _run_scheduled_mode(interval_seconds: Optional[int] = None, serve: bool = False) -> int:
    """
    Run in scheduled mode with continuous execution.

    Args:
        interval_seconds: Seconds between cycles. If None, uses Config.SCAN_INTERVAL_SECONDS
        serve: Also serve the HTTP API in the foreground

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    log_startup_banner()
    logger.info("Starting in scheduled mode")

    scheduler = Scheduler()
    cycle = build_scan_cycle()

    # Setup signal handlers for graceful shutdown
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        scheduler.stop(wait=True)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if not scheduler.start(cycle.run, interval_seconds=interval_seconds):
            logger.error("Failed to start scheduler")
            return 1

        if serve:
            run_server()
            scheduler.stop(wait=True)
            return 0

        logger.info("Scheduler is running. Press Ctrl+C to stop.")
        while True:
            time.sleep(1)

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        scheduler.stop(wait=True)
        return 0

    except Exception as e:
        logger.error(f"Fatal error in scheduled mode: {e}", exc_info=True)
        scheduler.stop(wait=False)
        return 1


if __name__ == "__main__":
    sys.exit(main())
