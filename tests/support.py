"""Test doubles and builders shared by the unit tests."""

import asyncio

from threadline.core.modules.comment.models import Author, Comment, Segment, TextSegment
from threadline.core.modules.notification.base import Notifier
from threadline.core.modules.operation.models import Severity
from threadline.core.modules.store.base import CommentStore
from threadline.core.modules.store.models import OwnerKeys, RecordKey, StoredDocument
from threadline.core.modules.sync.retry import Clock


class FakeClock(Clock):
    """Clock whose sleeps advance time instantly and are recorded."""

    def __init__(self, start: float = 1000.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.alerts: list[tuple[str, Severity]] = []

    def notify(self, message: str, severity: Severity = Severity.HIGH) -> None:
        self.alerts.append((message, severity))

    @property
    def messages(self) -> list[str]:
        return [message for message, _ in self.alerts]


class FlakyStore(CommentStore):
    """Wraps a store and raises queued errors before delegating.

    Each list is consumed front to back, one error per call of that method.
    """

    def __init__(self, inner: CommentStore) -> None:
        self.inner = inner
        self.fetch_errors: list[Exception] = []
        self.create_errors: list[Exception] = []
        self.update_errors: list[Exception] = []
        self.query_errors: list[Exception] = []
        self.update_calls = 0

    async def fetch_document(self, record_key: RecordKey) -> StoredDocument:
        if self.fetch_errors:
            raise self.fetch_errors.pop(0)
        return await self.inner.fetch_document(record_key)

    async def create_document(self, owner: OwnerKeys, comments: list[Comment]) -> RecordKey:
        if self.create_errors:
            raise self.create_errors.pop(0)
        return await self.inner.create_document(owner, comments)

    async def update_document(self, record_key: RecordKey, comments: list[Comment], expected_version: int) -> None:
        self.update_calls += 1
        if self.update_errors:
            raise self.update_errors.pop(0)
        await self.inner.update_document(record_key, comments, expected_version)

    async def query_documents(self, owner: OwnerKeys) -> list[StoredDocument]:
        if self.query_errors:
            raise self.query_errors.pop(0)
        return await self.inner.query_documents(owner)


def text(value: str) -> list[Segment]:
    """Build single-segment text content."""
    return [TextSegment(content=value)]


def make_comment(comment_id: str, author: Author, body: str = "hello", replies: list[Comment] | None = None) -> Comment:
    return Comment(
        id=comment_id,
        date_iso="2024-01-01T00:00:00.000Z",
        author=author,
        content=text(body),
        replies=[] if replies is None else replies,
    )


def make_reply(reply_id: str, parent_id: str, author: Author, body: str = "reply") -> Comment:
    return Comment(
        id=reply_id,
        date_iso="2024-01-01T00:00:00.000Z",
        author=author,
        content=text(body),
        parent_comment_id=parent_id,
    )

