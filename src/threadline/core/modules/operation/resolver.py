"""Locate the comment or reply an operation acts on."""

from dataclasses import dataclass

import structlog

from threadline.core.modules.comment.models import Comment
from threadline.core.modules.operation.models import OperationResult, OperationStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResolutionMessages:
    """Failure wording for one operation kind."""

    operation_name: str
    parent_missing_reason: str
    target_missing_reason: str
    miss_is_idempotent: bool = False  # an absent target counts as already done


@dataclass(frozen=True)
class Resolution:
    is_reply: bool
    target: Comment
    parent: Comment | None = None


def find_top_level(comments: list[Comment], comment_id: str) -> Comment | None:
    return next((comment for comment in comments if comment.id == comment_id), None)


def _missing(
    comments: list[Comment], status: OperationStatus, reason: str, messages: ResolutionMessages, **context: str
) -> OperationResult:
    if messages.miss_is_idempotent:
        return OperationResult(comments=comments, status=OperationStatus.NO_OP_IDEMPOTENT)
    logger.warning("operation_target_unresolved", operation=messages.operation_name, status=status, **context)
    return OperationResult(comments=comments, status=status, failure_reason=reason)


def resolve_target(
    comments: list[Comment],
    target_id: str,
    parent_comment_id: str | None,
    messages: ResolutionMessages,
) -> Resolution | OperationResult:
    """Find a top-level comment, or a reply when `parent_comment_id` is given.

    Returns a Resolution on success, otherwise the OperationResult the caller
    should return unchanged.
    """
    if parent_comment_id:
        parent = find_top_level(comments, parent_comment_id)
        if parent is None:
            return _missing(
                comments,
                OperationStatus.FAILED_PARENT_MISSING,
                messages.parent_missing_reason,
                messages,
                parent_id=parent_comment_id,
            )
        reply = parent.find_reply(target_id)
        if reply is None:
            return _missing(
                comments,
                OperationStatus.FAILED_TARGET_MISSING,
                messages.target_missing_reason,
                messages,
                parent_id=parent_comment_id,
                target_id=target_id,
            )
        return Resolution(is_reply=True, target=reply, parent=parent)

    comment = find_top_level(comments, target_id)
    if comment is None:
        return _missing(
            comments, OperationStatus.FAILED_TARGET_MISSING, messages.target_missing_reason, messages, target_id=target_id
        )
    return Resolution(is_reply=False, target=comment)
