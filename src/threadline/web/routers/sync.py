"""Change feed and sync status endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from threadline.core.modules.comment.models import Comment
from threadline.core.modules.sync.models import SyncStatus
from threadline.web.deps import AppDep

router: APIRouter = APIRouter(tags=["sync"])


class SnapshotRequest(BaseModel):
    """Comment tree pushed by the change feed."""

    comments: list[Comment] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    accepted: bool = Field(..., description="False while local writes are pending or in cooldown")


@router.post(
    "/records/{model_id}/{record_id}/snapshot",
    summary="Push snapshot",
    description="Offer a remote comment tree. It replaces local state only when no local write could be hidden by it.",
    operation_id="pushSnapshot",
    responses={200: {"description": "Whether the snapshot was applied"}},
)
async def push_snapshot(model_id: str, record_id: str, request: SnapshotRequest, app: AppDep) -> SnapshotResponse:
    accepted = await app.receive_snapshot(model_id, record_id, request.comments)
    return SnapshotResponse(accepted=accepted)


@router.get(
    "/records/{model_id}/{record_id}/sync",
    summary="Get sync status",
    operation_id="getSyncStatus",
    responses={200: {"description": "Queue, cooldown and retry signals"}},
)
async def get_sync_status(model_id: str, record_id: str, app: AppDep) -> SyncStatus:
    return await app.get_sync_status(model_id, record_id)
