from typing import Any

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import AutoReconnect, ConnectionFailure, DuplicateKeyError, NetworkTimeout, ServerSelectionTimeoutError

from threadline.core.modules.comment.models import Comment, dump_comments
from threadline.core.modules.store.base import CommentStore
from threadline.core.modules.store.models import CommentRecord, OwnerKeys, RecordKey, StoredDocument
from threadline.errors import NotFoundError, RecordExistsError, TransientStoreError, VersionConflictError
from threadline.utils import now

TRANSIENT_ERRORS = (AutoReconnect, NetworkTimeout, ConnectionFailure, ServerSelectionTimeoutError)


class MongoCommentStore(CommentStore):
    """Comments documents in a MongoDB collection, locked by an integer `version` field."""

    def __init__(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        self._collection = collection

    async def create_indexes(self) -> None:
        # One comments document per owner; makes concurrent first comments collide
        await self._collection.create_index([("model_id", 1), ("record_id", 1)], unique=True)

    async def fetch_document(self, record_key: RecordKey) -> StoredDocument:
        try:
            doc = await self._collection.find_one({"_id": record_key})
        except TRANSIENT_ERRORS as e:
            raise TransientStoreError(str(e)) from e
        if doc is None:
            raise NotFoundError(f"Comments record not found: {record_key}")
        return CommentRecord.model_validate(doc).to_stored()

    async def create_document(self, owner: OwnerKeys, comments: list[Comment]) -> RecordKey:
        record = CommentRecord(model_id=owner.model_id, record_id=owner.record_id, content=dump_comments(comments))
        try:
            await self._collection.insert_one(record.to_mongo())
        except DuplicateKeyError as e:
            raise RecordExistsError(f"Comments record already exists: {owner.model_id}/{owner.record_id}") from e
        except TRANSIENT_ERRORS as e:
            raise TransientStoreError(str(e)) from e
        return RecordKey(record.id)

    async def update_document(self, record_key: RecordKey, comments: list[Comment], expected_version: int) -> None:
        try:
            result = await self._collection.update_one(
                {"_id": record_key, "version": expected_version},
                {"$set": {"content": dump_comments(comments), "updated_at": now()}, "$inc": {"version": 1}},
            )
            if result.matched_count == 1:
                return
            exists = await self._collection.count_documents({"_id": record_key}, limit=1)
        except TRANSIENT_ERRORS as e:
            raise TransientStoreError(str(e)) from e
        if not exists:
            raise NotFoundError(f"Comments record not found: {record_key}")
        raise VersionConflictError(f"Stale version {expected_version} for {record_key}")

    async def query_documents(self, owner: OwnerKeys) -> list[StoredDocument]:
        try:
            cursor = self._collection.find({"model_id": owner.model_id, "record_id": owner.record_id})
            records = await CommentRecord.list_cursor(cursor)
        except TRANSIENT_ERRORS as e:
            raise TransientStoreError(str(e)) from e
        return [record.to_stored() for record in records]
