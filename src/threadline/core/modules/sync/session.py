from collections.abc import Callable

import structlog

from threadline.core.modules.comment.models import Author, Comment, Segment, is_content_empty, new_comment
from threadline.core.modules.notification.base import Notifier
from threadline.core.modules.operation.applicators import apply_operation
from threadline.core.modules.operation.models import (
    AddComment,
    AddReply,
    CommentOperation,
    DeleteComment,
    EditComment,
    UpvoteAction,
    UpvoteComment,
)
from threadline.core.modules.operation.resolver import Resolution, ResolutionMessages, resolve_target
from threadline.core.modules.store.base import CommentStore
from threadline.core.modules.store.models import OwnerKeys, RecordKey
from threadline.core.modules.sync.controller import OperationExecutor
from threadline.core.modules.sync.cooldown import CooldownGate
from threadline.core.modules.sync.models import RetryState, SyncStatus
from threadline.core.modules.sync.queue import OperationQueue
from threadline.core.modules.sync.retry import Clock, RetryPolicy, SystemClock
from threadline.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

DEFAULT_COOLDOWN_SECONDS = 8.0


class CommentThread:
    """Optimistic local view of one record's comments, kept in step with the store.

    Every action updates `comments` immediately and enqueues the matching
    operation. Snapshots pushed by the change feed are accepted only while
    `sync_allowed` is true, so a lagging snapshot cannot undo a local action.
    """

    def __init__(
        self,
        store: CommentStore,
        owner: OwnerKeys,
        notifier: Notifier,
        policy: RetryPolicy | None = None,
        cooldown_window: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Clock | None = None,
        on_record_created: Callable[[RecordKey], None] | None = None,
    ) -> None:
        self.owner = owner
        self._store = store
        self._on_record_created = on_record_created
        clock = clock or SystemClock()
        self.gate = CooldownGate(cooldown_window, clock)
        self.executor = OperationExecutor(
            store,
            owner,
            notifier,
            self.gate,
            policy=policy,
            clock=clock,
            on_record_created=self._record_created,
        )
        self.queue = OperationQueue(self.executor, self.gate)
        self._comments: list[Comment] = []

    async def load(self) -> list[Comment]:
        """Seed local state and the record key from the store."""
        documents = await self._store.query_documents(self.owner)
        if documents:
            self.executor.record_key = documents[0].record_key
            self._comments = documents[0].comments
        logger.debug("comments_loaded", record_key=self.record_key, count=len(self._comments))
        return self._comments

    @property
    def comments(self) -> list[Comment]:
        return self._comments

    @property
    def record_key(self) -> RecordKey | None:
        return self.executor.record_key

    @property
    def pending_count(self) -> int:
        return self.queue.pending_count

    @property
    def is_processing(self) -> bool:
        return self.queue.is_processing

    @property
    def sync_allowed(self) -> bool:
        return self.queue.sync_allowed

    @property
    def retry_state(self) -> RetryState:
        return self.queue.retry_state

    def status(self) -> SyncStatus:
        return SyncStatus(
            record_key=self.record_key,
            pending_count=self.pending_count,
            is_processing=self.is_processing,
            sync_allowed=self.sync_allowed,
            retry_state=self.retry_state,
        )

    def add_comment(self, content: list[Segment], author: Author) -> Comment:
        self._ensure_content(content)
        comment = new_comment(content, author)
        self._commit(AddComment(comment=comment))
        return comment

    def add_reply(self, parent_comment_id: str, content: list[Segment], author: Author) -> Comment:
        self._ensure_content(content)
        reply = new_comment(content, author, parent_comment_id=parent_comment_id)
        self._commit(AddReply(parent_comment_id=parent_comment_id, reply=reply))
        return reply

    def edit_comment(self, comment_id: str, content: list[Segment], parent_comment_id: str | None = None) -> None:
        self._ensure_content(content)
        self._commit(EditComment(id=comment_id, parent_comment_id=parent_comment_id, new_content=content))

    def delete_comment(self, comment_id: str, parent_comment_id: str | None = None) -> None:
        self._commit(DeleteComment(id=comment_id, parent_comment_id=parent_comment_id))

    def toggle_upvote(self, comment_id: str, user: Author, parent_comment_id: str | None = None) -> UpvoteAction:
        """Flip the user's upvote as seen locally; the queued operation carries the explicit action."""
        resolution = resolve_target(
            self._comments,
            comment_id,
            parent_comment_id,
            ResolutionMessages("UPVOTE_COMMENT", "Comment thread not found", "Comment not found"),
        )
        if not isinstance(resolution, Resolution):
            raise NotFoundError(f"Comment not found: {comment_id}")

        action = UpvoteAction.REMOVE if resolution.target.has_upvote_from(user.email) else UpvoteAction.ADD
        self._commit(UpvoteComment(id=comment_id, parent_comment_id=parent_comment_id, user=user, action=action))
        return action

    def receive_snapshot(self, comments: list[Comment]) -> bool:
        """Accept a snapshot from the change feed if no local write could be hidden by it."""
        if not self.sync_allowed:
            logger.debug(
                "snapshot_ignored",
                pending=self.pending_count,
                cooldown_remaining=round(self.gate.remaining, 3),
            )
            return False
        self._comments = list(comments)
        return True

    async def close(self) -> None:
        await self.queue.close()

    def _commit(self, operation: CommentOperation) -> None:
        result = apply_operation(self._comments, operation)
        if result.is_failure:
            raise NotFoundError(result.failure_reason or "Comment not found")
        self._comments = result.comments
        self.queue.enqueue(operation)

    def _record_created(self, record_key: RecordKey) -> None:
        if self._on_record_created is not None:
            self._on_record_created(record_key)

    @staticmethod
    def _ensure_content(content: list[Segment]) -> None:
        if is_content_empty(content):
            raise ValidationError("Comment content cannot be empty")
