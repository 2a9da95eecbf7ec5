"""Alert delivery to a Telegram chat via the Bot API."""

import html

import structlog
from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from threadline.core.modules.operation.models import Severity

logger = structlog.get_logger(__name__)

SEVERITY_TITLES = {
    Severity.HIGH: "⚠️ <b>Comment not saved</b>",
    Severity.LOW: "ℹ️ <b>Comment action skipped</b>",
    Severity.NONE: "<b>Comments</b>",
}


def render_alert(message: str, severity: Severity) -> str:
    return f"{SEVERITY_TITLES[severity]}\n{html.escape(message)}"


async def send_telegram_alert(token: str, chat_id: str, message: str, severity: Severity) -> tuple[bool, str | None]:
    """Send one alert message.

    Low-severity alerts are delivered silently.

    Returns:
        (True, None) on success, (False, error_message) on failure
    """
    try:
        bot = Bot(token=token)
        await bot.send_message(
            chat_id=chat_id,
            text=render_alert(message, severity),
            parse_mode=ParseMode.HTML,
            disable_notification=severity != Severity.HIGH,
        )
    except TelegramError as e:
        logger.exception("telegram_alert_failed", chat_id=chat_id, error=str(e))
        return False, str(e)
    logger.debug("telegram_alert_sent", chat_id=chat_id, severity=severity)
    return True, None
