"""
Telegram notifier for delivering new edge alerts.

This module sends the alerts persisted by a scan cycle to Telegram.
It uses the python-telegram-bot library for message delivery and is a
no-op when no bot token or chat id is configured.
"""

import asyncio
import logging

from telegram import Bot
from telegram.error import TelegramError, TimedOut, NetworkError

from edgebot.config import Config
from edgebot.models import EdgeAlert
from edgebot.utils import format_currency

# Configure module logger
logger = logging.getLogger(__name__)

MAX_ALERTS_PER_MESSAGE = 10


def _clean(text: str) -> str:
    # Markdown control characters break Telegram's legacy parser
    return text.replace("*", "").replace("_", "").replace("[", "").replace("]", "").replace("`", "")


def format_alerts(alerts: list[EdgeAlert]) -> str:
    """
    Format a cycle's alerts into a readable Telegram message.

    Args:
        alerts: Alerts persisted by one scan cycle

    Returns:
        Formatted message string ready for Telegram
    """
    if not alerts:
        return "🔍 No edges detected."

    lines = [f"🚨 *{len(alerts)} edge alert{'s' if len(alerts) != 1 else ''}*\n"]

    for alert in alerts[:MAX_ALERTS_PER_MESSAGE]:
        edge_cents = (alert.true_probability - alert.market_price) * 100
        lines.append(f"*{_clean(alert.title)}*")
        lines.append(f"{_clean(alert.outcome).upper()} EV +{alert.expected_value:.2f}% @ {alert.market_price:.3f}")
        lines.append(f"True: {alert.true_probability:.3f} | Edge: +{edge_cents:.1f}¢")
        lines.append(f"Liq: {format_currency(alert.liquidity)}")
        if alert.slug:
            lines.append(f"https://polymarket.com/event/{alert.slug}")
        lines.append("")

    if len(alerts) > MAX_ALERTS_PER_MESSAGE:
        lines.append(f"...and {len(alerts) - MAX_ALERTS_PER_MESSAGE} more.")

    return "\n".join(lines)


def is_configured() -> bool:
    return bool(Config.TELEGRAM_BOT_TOKEN and Config.TELEGRAM_CHAT_ID)


async def _send(message: str) -> None:
    try:
        chat_id = int(Config.TELEGRAM_CHAT_ID)
    except ValueError:
        chat_id = Config.TELEGRAM_CHAT_ID

    async with Bot(token=Config.TELEGRAM_BOT_TOKEN) as bot:
        await bot.send_message(
            chat_id=chat_id,
            text=message,
            parse_mode="Markdown",
            disable_web_page_preview=True,
            read_timeout=Config.API_TIMEOUT,
            write_timeout=Config.API_TIMEOUT,
            connect_timeout=Config.API_TIMEOUT,
        )


def send_telegram_message(message: str) -> bool:
    """
    Send a message to Telegram safely with error handling.

    Handles network errors, timeouts, and other Telegram API errors.
    Returns False on any failure, True on success.

    Args:
        message: Message text to send (supports Markdown formatting)

    Returns:
        True if message sent successfully, False otherwise
    """
    if not is_configured():
        logger.debug("Telegram not configured (missing token or chat_id)")
        return False

    if not message or not message.strip():
        logger.warning("Empty message, not sending")
        return False

    try:
        asyncio.run(_send(message))
        logger.info("Telegram message sent successfully")
        return True

    except TimedOut:
        logger.error(f"Telegram API request timed out after {Config.API_TIMEOUT}s")
        return False

    except NetworkError as e:
        logger.error(f"Network error sending Telegram message: {e}")
        return False

    except TelegramError as e:
        logger.error(f"Telegram API error: {e}")
        return False

    except Exception as e:
        logger.error(f"Unexpected error sending Telegram message: {e}", exc_info=True)
        return False


def send_alerts(alerts: list[EdgeAlert]) -> bool:
    """
    Send a cycle's new alerts to Telegram.

    Args:
        alerts: Alerts persisted by one scan cycle

    Returns:
        True if sent successfully, False otherwise
    """
    if not alerts:
        logger.debug("No alerts to send")
        return False

    return send_telegram_message(format_alerts(alerts))
