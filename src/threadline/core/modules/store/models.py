"""Comments documents as seen through the store interface."""

from datetime import datetime
from typing import NewType

from pydantic import BaseModel, Field

from threadline.core.db import MongoModel
from threadline.core.modules.comment.models import Comment, parse_comments
from threadline.utils import now

RecordKey = NewType("RecordKey", str)


class OwnerKeys(BaseModel):
    """Identity of the commented entity: owning model id plus owning record id."""

    model_id: str = Field(..., description="Model (content type) of the commented record")
    record_id: str = Field(..., description="Commented record")

    model_config = {"frozen": True}


class StoredDocument(BaseModel):
    """One fetched comments document together with its version token."""

    record_key: RecordKey
    owner: OwnerKeys
    comments: list[Comment]
    version: int


class CommentRecord(MongoModel):
    """MongoDB document holding a record's whole comment tree.

    `content` is the JSON-encoded comment list. `version` increases by one on
    every write and is matched on update for optimistic locking.
    Indexed on (model_id, record_id) - unique.
    """

    model_id: str
    record_id: str
    content: str = "[]"
    version: int = 1
    updated_at: datetime = Field(default_factory=now)

    @property
    def owner(self) -> OwnerKeys:
        return OwnerKeys(model_id=self.model_id, record_id=self.record_id)

    def to_stored(self) -> StoredDocument:
        return StoredDocument(
            record_key=RecordKey(self.id),
            owner=self.owner,
            comments=parse_comments(self.content),
            version=self.version,
        )
