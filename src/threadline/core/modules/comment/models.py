"""Comment tree stored as JSON inside a single comments document per record."""

import json
from typing import Annotated, Any, Literal
from uuid import uuid4

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from threadline.errors import ValidationError
from threadline.utils import now_iso

logger = structlog.get_logger(__name__)


class Author(BaseModel):
    """Comment author or upvoter, identified by email."""

    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address, the identity key")


class TextSegment(BaseModel):
    """Plain text run."""

    type: Literal["text"] = "text"
    content: str


class MentionSegment(BaseModel):
    """Reference to a user, field, asset, record or model.

    The payload is opaque here and carried through merges untouched.
    """

    type: Literal["mention"] = "mention"
    mention: dict[str, Any]


Segment = Annotated[TextSegment | MentionSegment, Field(discriminator="type")]


class Comment(BaseModel):
    """Top-level comment or reply.

    `id` is the only lookup key; `date_iso` is for display and ordering and must
    never be used for identity. Only top-level comments carry `replies`.
    """

    id: str = Field(..., description="Stable unique identifier")
    date_iso: str = Field(default_factory=now_iso, alias="dateISO", description="Creation timestamp, display only")
    author: Author
    content: list[Segment] = Field(default_factory=list)
    users_who_upvoted: list[Author] = Field(default_factory=list, alias="usersWhoUpvoted")
    replies: list["Comment"] | None = None
    parent_comment_id: str | None = Field(None, alias="parentCommentId")

    model_config = ConfigDict(populate_by_name=True)

    def has_upvote_from(self, email: str) -> bool:
        return any(voter.email == email for voter in self.users_who_upvoted)

    def find_reply(self, reply_id: str) -> "Comment | None":
        return next((reply for reply in self.replies or [] if reply.id == reply_id), None)


COMMENT_LIST_ADAPTER: TypeAdapter[list[Comment]] = TypeAdapter(list[Comment])


def parse_comments(raw: str | list[Any] | None) -> list[Comment]:
    """Parse the opaque `content` field of a comments document.

    Accepts a JSON string or an already decoded list. Malformed content is
    logged and treated as an empty thread rather than raised.
    """
    if not raw:
        return []
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        return COMMENT_LIST_ADAPTER.validate_python(data)
    except json.JSONDecodeError as e:
        logger.error("comments_json_invalid", content_length=len(raw), error=str(e))
    except PydanticValidationError as e:
        logger.error("comments_validation_failed", error_count=e.error_count(), errors=e.errors()[:3])
    return []


def dump_comments(comments: list[Comment]) -> str:
    """Serialize comments to the JSON string kept in the document's `content` field."""
    return COMMENT_LIST_ADAPTER.dump_json(comments, by_alias=True, exclude_none=True).decode()


def comments_to_json(comments: list[Comment]) -> list[dict[str, Any]]:
    return COMMENT_LIST_ADAPTER.dump_python(comments, mode="json", by_alias=True, exclude_none=True)


def is_content_empty(content: list[Segment]) -> bool:
    """True when there is no mention and no non-whitespace text."""
    for segment in content:
        if isinstance(segment, MentionSegment):
            return False
        if segment.content.strip():
            return False
    return True


def new_comment(content: list[Segment], author: Author, parent_comment_id: str | None = None) -> Comment:
    """Build a fresh comment or reply with a random UUID id."""
    if not author.name.strip() or not author.email.strip():
        raise ValidationError("Cannot create comment: author name and email are required")

    return Comment(
        id=str(uuid4()),
        date_iso=now_iso(),
        author=author,
        content=content,
        users_who_upvoted=[],
        replies=None if parent_comment_id else [],
        parent_comment_id=parent_comment_id,
    )
