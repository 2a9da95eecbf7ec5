"""Comment operations and merge outcomes.

Every operation carries enough information to be replayed any number of
times: ids are assigned by the client before enqueueing and upvotes are an
explicit add or remove rather than a toggle.
"""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from threadline.core.modules.comment.models import Author, Comment, Segment


class OperationKind(StrEnum):
    """Tags of the operation union."""

    ADD_COMMENT = "ADD_COMMENT"
    DELETE_COMMENT = "DELETE_COMMENT"
    EDIT_COMMENT = "EDIT_COMMENT"
    UPVOTE_COMMENT = "UPVOTE_COMMENT"
    ADD_REPLY = "ADD_REPLY"


class UpvoteAction(StrEnum):
    ADD = "add"
    REMOVE = "remove"


class _Operation(BaseModel):
    type: str

    model_config = ConfigDict(populate_by_name=True)

    @property
    def kind(self) -> OperationKind:
        return OperationKind(self.type)


class AddComment(_Operation):
    type: Literal["ADD_COMMENT"] = "ADD_COMMENT"
    comment: Comment


class DeleteComment(_Operation):
    type: Literal["DELETE_COMMENT"] = "DELETE_COMMENT"
    id: str
    parent_comment_id: str | None = Field(None, alias="parentCommentId")


class EditComment(_Operation):
    type: Literal["EDIT_COMMENT"] = "EDIT_COMMENT"
    id: str
    parent_comment_id: str | None = Field(None, alias="parentCommentId")
    new_content: list[Segment] = Field(..., alias="newContent")


class UpvoteComment(_Operation):
    type: Literal["UPVOTE_COMMENT"] = "UPVOTE_COMMENT"
    id: str
    parent_comment_id: str | None = Field(None, alias="parentCommentId")
    user: Author
    action: UpvoteAction


class AddReply(_Operation):
    type: Literal["ADD_REPLY"] = "ADD_REPLY"
    parent_comment_id: str = Field(..., alias="parentCommentId")
    reply: Comment


CommentOperation = Annotated[
    AddComment | DeleteComment | EditComment | UpvoteComment | AddReply,
    Field(discriminator="type"),
]

OPERATION_ADAPTER: TypeAdapter[CommentOperation] = TypeAdapter(CommentOperation)


class OperationStatus(StrEnum):
    """Outcome of merging one operation into a comment tree."""

    APPLIED = "applied"
    NO_OP_IDEMPOTENT = "no_op_idempotent"  # already applied, expected after a retry
    FAILED_PARENT_MISSING = "failed_parent_missing"
    FAILED_TARGET_MISSING = "failed_target_missing"


class OperationResult(BaseModel):
    comments: list[Comment]
    status: OperationStatus
    failure_reason: str | None = None

    @property
    def is_failure(self) -> bool:
        return self.status in (OperationStatus.FAILED_PARENT_MISSING, OperationStatus.FAILED_TARGET_MISSING)


class Severity(StrEnum):
    """How loudly a merge outcome must be reported to the user.

    - HIGH: user-authored text was discarded (reply or edit could not land)
    - LOW: the action had nothing left to act on (delete, upvote)
    - NONE: applied or already applied
    """

    NONE = "none"
    LOW = "low"
    HIGH = "high"


HIGH_SEVERITY_KINDS = frozenset({OperationKind.ADD_REPLY, OperationKind.EDIT_COMMENT})


def failure_severity(kind: OperationKind, status: OperationStatus) -> Severity:
    if status in (OperationStatus.APPLIED, OperationStatus.NO_OP_IDEMPOTENT):
        return Severity.NONE
    return Severity.HIGH if kind in HIGH_SEVERITY_KINDS else Severity.LOW
