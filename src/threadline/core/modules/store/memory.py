"""In-process comments store with the same locking rules as the MongoDB one."""

import asyncio

from threadline.core.modules.comment.models import Comment, dump_comments
from threadline.core.modules.store.base import CommentStore
from threadline.core.modules.store.models import CommentRecord, OwnerKeys, RecordKey, StoredDocument
from threadline.errors import NotFoundError, RecordExistsError, VersionConflictError
from threadline.utils import now


class InMemoryCommentStore(CommentStore):
    """Dictionary-backed store.

    Every call yields to the event loop first, so concurrent clients interleave
    between calls the way they would against a remote store.
    """

    def __init__(self) -> None:
        self._records: dict[str, CommentRecord] = {}

    @property
    def records(self) -> list[CommentRecord]:
        return list(self._records.values())

    async def fetch_document(self, record_key: RecordKey) -> StoredDocument:
        await asyncio.sleep(0)
        record = self._records.get(record_key)
        if record is None:
            raise NotFoundError(f"Comments record not found: {record_key}")
        return record.to_stored()

    async def create_document(self, owner: OwnerKeys, comments: list[Comment]) -> RecordKey:
        await asyncio.sleep(0)
        if any(record.owner == owner for record in self._records.values()):
            raise RecordExistsError(f"Comments record already exists: {owner.model_id}/{owner.record_id}")
        record = CommentRecord(model_id=owner.model_id, record_id=owner.record_id, content=dump_comments(comments))
        self._records[record.id] = record
        return RecordKey(record.id)

    async def update_document(self, record_key: RecordKey, comments: list[Comment], expected_version: int) -> None:
        await asyncio.sleep(0)
        record = self._records.get(record_key)
        if record is None:
            raise NotFoundError(f"Comments record not found: {record_key}")
        if record.version != expected_version:
            raise VersionConflictError(f"Expected version {expected_version}, found {record.version}")
        self._records[record_key] = record.model_copy(
            update={"content": dump_comments(comments), "version": record.version + 1, "updated_at": now()}
        )

    async def query_documents(self, owner: OwnerKeys) -> list[StoredDocument]:
        await asyncio.sleep(0)
        return [record.to_stored() for record in self._records.values() if record.owner == owner]
