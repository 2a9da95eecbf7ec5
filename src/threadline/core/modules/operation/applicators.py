"""Pure merge of one operation into a comment tree.

Each function takes the current server-side comments and returns a new list
plus an outcome. Inputs are never mutated, and applying the same operation
twice leaves the tree as the first application did, which is what makes the
queue's retries safe.
"""

from collections.abc import Callable
from typing import assert_never

import structlog

from threadline.core.modules.comment.models import Author, Comment
from threadline.core.modules.operation.models import (
    AddComment,
    AddReply,
    CommentOperation,
    DeleteComment,
    EditComment,
    OperationResult,
    OperationStatus,
    UpvoteAction,
    UpvoteComment,
)
from threadline.core.modules.operation.resolver import Resolution, ResolutionMessages, find_top_level, resolve_target

logger = structlog.get_logger(__name__)

REPLY_PARENT_MISSING_REASON = "Your reply could not be saved because the comment was deleted by another user."


def apply_operation(comments: list[Comment], operation: CommentOperation) -> OperationResult:
    """Apply any operation to a comment list."""
    match operation:
        case AddComment():
            return apply_add_comment(comments, operation)
        case DeleteComment():
            return apply_delete_comment(comments, operation)
        case EditComment():
            return apply_edit_comment(comments, operation)
        case UpvoteComment():
            return apply_upvote_comment(comments, operation)
        case AddReply():
            return apply_add_reply(comments, operation)
        case _:
            assert_never(operation)


def _update_target(
    comments: list[Comment], target_id: str, parent_comment_id: str | None, update: Callable[[Comment], Comment]
) -> list[Comment]:
    if parent_comment_id:
        return [
            comment.model_copy(
                update={"replies": [update(r) if r.id == target_id else r for r in comment.replies or []]}
            )
            if comment.id == parent_comment_id
            else comment
            for comment in comments
        ]
    return [update(comment) if comment.id == target_id else comment for comment in comments]


def apply_add_comment(comments: list[Comment], operation: AddComment) -> OperationResult:
    if find_top_level(comments, operation.comment.id) is not None:
        return OperationResult(comments=comments, status=OperationStatus.NO_OP_IDEMPOTENT)

    comment = operation.comment
    if comment.replies is None:
        comment = comment.model_copy(update={"replies": []})
    return OperationResult(comments=[comment, *comments], status=OperationStatus.APPLIED)


def apply_delete_comment(comments: list[Comment], operation: DeleteComment) -> OperationResult:
    resolution = resolve_target(
        comments,
        operation.id,
        operation.parent_comment_id,
        ResolutionMessages(
            operation_name=operation.type,
            parent_missing_reason="The comment thread was deleted by another user.",
            target_missing_reason="The comment was deleted by another user.",
            miss_is_idempotent=True,
        ),
    )
    if not isinstance(resolution, Resolution):
        return resolution

    if resolution.is_reply:
        updated = [
            comment.model_copy(update={"replies": [r for r in comment.replies or [] if r.id != operation.id]})
            if comment.id == operation.parent_comment_id
            else comment
            for comment in comments
        ]
        return OperationResult(comments=updated, status=OperationStatus.APPLIED)

    # Replies go with their parent
    return OperationResult(
        comments=[comment for comment in comments if comment.id != operation.id], status=OperationStatus.APPLIED
    )


def apply_edit_comment(comments: list[Comment], operation: EditComment) -> OperationResult:
    resolution = resolve_target(
        comments,
        operation.id,
        operation.parent_comment_id,
        ResolutionMessages(
            operation_name=operation.type,
            parent_missing_reason="Your edit could not be saved because the comment thread was deleted by another user.",
            target_missing_reason=(
                "The reply you were editing was deleted by another user."
                if operation.parent_comment_id
                else "The comment you were editing was deleted by another user."
            ),
        ),
    )
    if not isinstance(resolution, Resolution):
        return resolution

    if resolution.target.content == operation.new_content:
        return OperationResult(comments=comments, status=OperationStatus.NO_OP_IDEMPOTENT)

    updated = _update_target(
        comments,
        operation.id,
        operation.parent_comment_id,
        lambda comment: comment.model_copy(update={"content": list(operation.new_content)}),
    )
    return OperationResult(comments=updated, status=OperationStatus.APPLIED)


def _modify_upvotes(voters: list[Author], user: Author, action: UpvoteAction) -> list[Author]:
    if action == UpvoteAction.ADD:
        return [*voters, user]
    return [voter for voter in voters if voter.email != user.email]


def apply_upvote_comment(comments: list[Comment], operation: UpvoteComment) -> OperationResult:
    resolution = resolve_target(
        comments,
        operation.id,
        operation.parent_comment_id,
        ResolutionMessages(
            operation_name=operation.type,
            parent_missing_reason="The comment thread was deleted by another user.",
            target_missing_reason=(
                "The reply was deleted by another user."
                if operation.parent_comment_id
                else "The comment was deleted by another user."
            ),
        ),
    )
    if not isinstance(resolution, Resolution):
        return resolution

    # Explicit add/remove instead of a toggle, so a replayed upvote never flips back
    already_upvoted = resolution.target.has_upvote_from(operation.user.email)
    if already_upvoted == (operation.action == UpvoteAction.ADD):
        return OperationResult(comments=comments, status=OperationStatus.NO_OP_IDEMPOTENT)

    updated = _update_target(
        comments,
        operation.id,
        operation.parent_comment_id,
        lambda comment: comment.model_copy(
            update={"users_who_upvoted": _modify_upvotes(comment.users_who_upvoted, operation.user, operation.action)}
        ),
    )
    return OperationResult(comments=updated, status=OperationStatus.APPLIED)


def apply_add_reply(comments: list[Comment], operation: AddReply) -> OperationResult:
    # A reply can never be a parent, so only the top level is searched
    parent = find_top_level(comments, operation.parent_comment_id)
    if parent is None:
        logger.warning(
            "reply_parent_missing",
            parent_id=operation.parent_comment_id,
            reply_id=operation.reply.id,
            content_lost=True,
        )
        return OperationResult(
            comments=comments,
            status=OperationStatus.FAILED_PARENT_MISSING,
            failure_reason=REPLY_PARENT_MISSING_REASON,
        )

    if parent.find_reply(operation.reply.id) is not None:
        return OperationResult(comments=comments, status=OperationStatus.NO_OP_IDEMPOTENT)

    reply = operation.reply.model_copy(update={"replies": None, "parent_comment_id": operation.parent_comment_id})
    updated = [
        comment.model_copy(update={"replies": [reply, *(comment.replies or [])]})
        if comment.id == operation.parent_comment_id
        else comment
        for comment in comments
    ]
    return OperationResult(comments=updated, status=OperationStatus.APPLIED)
