import asyncio
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from threadline.core.core import Service
from threadline.core.modules.store.models import OwnerKeys, RecordKey
from threadline.core.modules.sync.retry import RetryPolicy
from threadline.core.modules.sync.session import CommentThread

logger = structlog.get_logger(__name__)


class SyncService(Service):
    """Keeps one comment thread, with its own queue, per commented record."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        super().__init__(database)
        self._threads: dict[OwnerKeys, CommentThread] = {}
        self._loading: dict[OwnerKeys, asyncio.Lock] = {}

    async def get_thread(self, owner: OwnerKeys) -> CommentThread:
        """Get the thread for a record, loading it from the store on first use.

        A thread is registered only once it has loaded; concurrent first
        callers wait for the same load, and a failed load is retried by the
        next caller.
        """
        thread = self._threads.get(owner)
        if thread is not None:
            return thread

        async with self._loading.setdefault(owner, asyncio.Lock()):
            thread = self._threads.get(owner)
            if thread is not None:
                return thread

            config = self.core.config
            thread = CommentThread(
                store=self.core.services.store.backend,
                owner=owner,
                notifier=self.core.services.notification,
                policy=RetryPolicy.from_config(config),
                cooldown_window=config.sync_cooldown_ms / 1000,
                on_record_created=lambda record_key: self._record_created(owner, record_key),
            )
            await thread.load()
            self._threads[owner] = thread
            self._loading.pop(owner, None)
            return thread

    def _record_created(self, owner: OwnerKeys, record_key: RecordKey) -> None:
        logger.info("thread_record_created", model_id=owner.model_id, record_id=owner.record_id, record_key=record_key)

    async def on_stop(self) -> None:
        """Drain every queue so accepted operations are not lost on shutdown."""
        for owner, thread in list(self._threads.items()):
            if thread.pending_count:
                logger.info("draining_thread", model_id=owner.model_id, record_id=owner.record_id, pending=thread.pending_count)
            await thread.close()
