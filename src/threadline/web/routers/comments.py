"""Comment-related API endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from threadline.core.modules.comment.models import Author, Comment, Segment
from threadline.core.modules.operation.models import UpvoteAction
from threadline.web.deps import AppDep
from threadline.web.openapi import ErrorResponse

router: APIRouter = APIRouter(tags=["comments"])


class CreateCommentRequest(BaseModel):
    """Request to add a top-level comment."""

    content: list[Segment] = Field(..., description="Rich content segments", min_length=1)
    author: Author


class CreateReplyRequest(BaseModel):
    """Request to reply to a top-level comment."""

    content: list[Segment] = Field(..., description="Rich content segments", min_length=1)
    author: Author


class EditCommentRequest(BaseModel):
    content: list[Segment] = Field(..., description="Replacement content", min_length=1)
    parent_comment_id: str | None = Field(None, description="Set when editing a reply")


class UpvoteRequest(BaseModel):
    user: Author
    parent_comment_id: str | None = Field(None, description="Set when upvoting a reply")


class UpvoteResponse(BaseModel):
    action: UpvoteAction = Field(..., description="What the toggle did for this user")


@router.get(
    "/records/{model_id}/{record_id}/comments",
    summary="List record comments",
    description="Get the comment tree of a record as seen locally, including writes not yet persisted.",
    operation_id="listComments",
    responses={200: {"description": "Comment tree, top-level comments with their replies"}},
)
async def list_comments(model_id: str, record_id: str, app: AppDep) -> list[Comment]:
    return await app.get_comments(model_id, record_id)


@router.post(
    "/records/{model_id}/{record_id}/comments",
    summary="Create comment",
    description="Add a top-level comment. The comment is visible immediately and saved in the background.",
    operation_id="createComment",
    status_code=201,
    responses={
        201: {"description": "Comment created"},
        400: {"model": ErrorResponse, "description": "Empty content or missing author"},
    },
)
async def create_comment(model_id: str, record_id: str, request: CreateCommentRequest, app: AppDep) -> Comment:
    return await app.add_comment(model_id, record_id, request.content, request.author)


@router.post(
    "/records/{model_id}/{record_id}/comments/{comment_id}/replies",
    summary="Create reply",
    description="Reply to a top-level comment. Replies cannot be nested.",
    operation_id="createReply",
    status_code=201,
    responses={
        201: {"description": "Reply created"},
        400: {"model": ErrorResponse, "description": "Empty content or missing author"},
        404: {"model": ErrorResponse, "description": "Parent comment not found"},
    },
)
async def create_reply(
    model_id: str, record_id: str, comment_id: str, request: CreateReplyRequest, app: AppDep
) -> Comment:
    return await app.add_reply(model_id, record_id, comment_id, request.content, request.author)


@router.patch(
    "/records/{model_id}/{record_id}/comments/{comment_id}",
    summary="Edit comment",
    operation_id="editComment",
    status_code=204,
    responses={
        204: {"description": "Comment updated"},
        400: {"model": ErrorResponse, "description": "Empty content"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def edit_comment(model_id: str, record_id: str, comment_id: str, request: EditCommentRequest, app: AppDep) -> None:
    await app.edit_comment(model_id, record_id, comment_id, request.content, request.parent_comment_id)


@router.delete(
    "/records/{model_id}/{record_id}/comments/{comment_id}",
    summary="Delete comment",
    description="Delete a comment together with its replies, or a single reply when parent_comment_id is given.",
    operation_id="deleteComment",
    status_code=204,
    responses={204: {"description": "Comment deleted"}},
)
async def delete_comment(
    model_id: str, record_id: str, comment_id: str, app: AppDep, parent_comment_id: str | None = None
) -> None:
    await app.delete_comment(model_id, record_id, comment_id, parent_comment_id)


@router.post(
    "/records/{model_id}/{record_id}/comments/{comment_id}/upvote",
    summary="Toggle upvote",
    operation_id="toggleUpvote",
    responses={
        200: {"description": "Upvote added or removed"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def toggle_upvote(
    model_id: str, record_id: str, comment_id: str, request: UpvoteRequest, app: AppDep
) -> UpvoteResponse:
    action = await app.toggle_upvote(model_id, record_id, comment_id, request.user, request.parent_comment_id)
    return UpvoteResponse(action=action)
