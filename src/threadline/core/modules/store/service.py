from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from threadline.core.core import Service
from threadline.core.modules.store.base import CommentStore
from threadline.core.modules.store.memory import InMemoryCommentStore
from threadline.core.modules.store.mongo import MongoCommentStore

logger = structlog.get_logger(__name__)


class StoreService(Service):
    """Provides the comments store selected by `database_url`."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        super().__init__(database)
        self._backend: CommentStore | None = None

    async def on_start(self) -> None:
        """Pick the backend and create indexes."""
        if self.database is None:
            self._backend = InMemoryCommentStore()
            logger.info("comment_store_started", backend="memory")
            return

        store = MongoCommentStore(self.database.get_collection(self.core.config.collection_name))
        await store.create_indexes()
        self._backend = store
        logger.info("comment_store_started", backend="mongodb", collection=self.core.config.collection_name)

    @property
    def backend(self) -> CommentStore:
        if self._backend is None:
            raise RuntimeError("Comment store not started")
        return self._backend
