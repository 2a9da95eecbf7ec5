from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from threadline.config import Config
from threadline.core.core import Core
from threadline.core.modules.comment.models import Author, Comment, Segment
from threadline.core.modules.operation.models import UpvoteAction
from threadline.core.modules.store.models import OwnerKeys
from threadline.core.modules.sync.models import SyncStatus
from threadline.core.modules.sync.session import CommentThread


class App:
    """Facade for all application operations, delegating to the per-record comment threads."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def _thread(self, model_id: str, record_id: str) -> CommentThread:
        return await self._core.services.sync.get_thread(OwnerKeys(model_id=model_id, record_id=record_id))

    async def get_comments(self, model_id: str, record_id: str) -> list[Comment]:
        """Get the local (optimistic) comment tree of a record."""
        return (await self._thread(model_id, record_id)).comments

    async def add_comment(self, model_id: str, record_id: str, content: list[Segment], author: Author) -> Comment:
        """Add a top-level comment; persisted in the background."""
        return (await self._thread(model_id, record_id)).add_comment(content, author)

    async def add_reply(
        self, model_id: str, record_id: str, parent_comment_id: str, content: list[Segment], author: Author
    ) -> Comment:
        """Reply to a top-level comment; persisted in the background."""
        return (await self._thread(model_id, record_id)).add_reply(parent_comment_id, content, author)

    async def edit_comment(
        self, model_id: str, record_id: str, comment_id: str, content: list[Segment], parent_comment_id: str | None
    ) -> None:
        """Replace the content of a comment or reply."""
        (await self._thread(model_id, record_id)).edit_comment(comment_id, content, parent_comment_id)

    async def delete_comment(self, model_id: str, record_id: str, comment_id: str, parent_comment_id: str | None) -> None:
        """Delete a comment (with its replies) or a single reply."""
        (await self._thread(model_id, record_id)).delete_comment(comment_id, parent_comment_id)

    async def toggle_upvote(
        self, model_id: str, record_id: str, comment_id: str, user: Author, parent_comment_id: str | None
    ) -> UpvoteAction:
        """Flip the user's upvote on a comment or reply."""
        return (await self._thread(model_id, record_id)).toggle_upvote(comment_id, user, parent_comment_id)

    async def receive_snapshot(self, model_id: str, record_id: str, comments: list[Comment]) -> bool:
        """Offer a snapshot from the change feed; returns whether it replaced local state."""
        return (await self._thread(model_id, record_id)).receive_snapshot(comments)

    async def get_sync_status(self, model_id: str, record_id: str) -> SyncStatus:
        """Get queue and cooldown signals for a record."""
        return (await self._thread(model_id, record_id)).status()
