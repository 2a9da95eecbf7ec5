from abc import ABC, abstractmethod

from threadline.core.modules.comment.models import Comment
from threadline.core.modules.store.models import OwnerKeys, RecordKey, StoredDocument


class CommentStore(ABC):
    """Remote document store with per-document optimistic locking.

    Implementations raise NotFoundError, VersionConflictError,
    RecordExistsError and TransientStoreError; anything else is treated as
    unclassified by callers.
    """

    @abstractmethod
    async def fetch_document(self, record_key: RecordKey) -> StoredDocument:
        """Read a document and its current version token."""

    @abstractmethod
    async def create_document(self, owner: OwnerKeys, comments: list[Comment]) -> RecordKey:
        """Create the comments document for an owner, failing if one already exists."""

    @abstractmethod
    async def update_document(self, record_key: RecordKey, comments: list[Comment], expected_version: int) -> None:
        """Replace the comments if the stored version still equals `expected_version`."""

    @abstractmethod
    async def query_documents(self, owner: OwnerKeys) -> list[StoredDocument]:
        """List documents belonging to an owner (at most one in practice)."""
