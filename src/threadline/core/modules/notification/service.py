import asyncio
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from threadline.core.core import Service
from threadline.core.modules.notification.base import Notifier
from threadline.core.modules.notification.sender import send_telegram_alert
from threadline.core.modules.operation.models import Severity

logger = structlog.get_logger(__name__)


class NotificationService(Service, Notifier):
    """Surfaces queue failures: always logged, optionally relayed to a Telegram chat."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        super().__init__(database)
        self._notification_tasks: set[asyncio.Task[None]] = set()

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.core.config.telegram_bot_token and self.core.config.telegram_chat_id)

    async def on_stop(self) -> None:
        """Let in-flight alerts finish before shutdown."""
        if self._notification_tasks:
            await asyncio.gather(*self._notification_tasks, return_exceptions=True)

    def notify(self, message: str, severity: Severity = Severity.HIGH) -> None:
        """Log the alert and send it to Telegram in the background."""
        if severity == Severity.HIGH:
            logger.warning("user_alert", message=message, severity=severity)
        else:
            logger.info("user_alert", message=message, severity=severity)

        if not self.telegram_enabled:
            return

        task = asyncio.create_task(self._send_async(message, severity))
        self._notification_tasks.add(task)
        task.add_done_callback(self._notification_tasks.discard)

    async def _send_async(self, message: str, severity: Severity) -> None:
        token = self.core.config.telegram_bot_token
        chat_id = self.core.config.telegram_chat_id
        if not token or not chat_id:
            return
        try:
            success, error_msg = await send_telegram_alert(token, chat_id, message, severity)
            if not success:
                logger.warning("user_alert_delivery_failed", error=error_msg)
        except Exception as e:
            logger.exception("user_alert_delivery_error", error=str(e))
