from enum import StrEnum

from pydantic import BaseModel, Field

from threadline.core.modules.operation.models import OperationKind, OperationStatus
from threadline.core.modules.store.models import RecordKey


class RetryReason(StrEnum):
    """Recoverable failure classes, each with its own backoff schedule."""

    VERSION_CONFLICT = "version_conflict"
    NETWORK_ERROR = "network_error"


class TerminationReason(StrEnum):
    MAX_ATTEMPTS = "max_attempts"
    TIMEOUT = "timeout"


class Messages(StrEnum):
    """User-facing alerts raised by the queue."""

    SAVE_FAILED = "Failed to save comment. Please refresh and try again."
    RECORD_MISSING = "The comments for this record were removed. Please refresh and try again."
    MAX_RETRIES_EXCEEDED = "Unable to save after multiple attempts. Please check your connection and try again."
    OPERATION_TIMEOUT = "Operation timed out after {duration}. Please try again."


def timeout_message(max_duration: float) -> str:
    """Render OPERATION_TIMEOUT for a wall-clock cap given in seconds."""
    if max_duration >= 60 and max_duration % 60 == 0:
        minutes = int(max_duration // 60)
        duration = f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    else:
        duration = "1 second" if max_duration == 1 else f"{max_duration:g} seconds"
    return Messages.OPERATION_TIMEOUT.format(duration=duration)


class RetryState(BaseModel):
    """Observability snapshot of the operation currently being retried."""

    is_retrying: bool = Field(False, description="An operation is waiting to retry")
    operation_kind: OperationKind | None = Field(None, description="Kind of the operation being retried")
    attempt_count: int = Field(0, description="Failed attempts so far for this operation", ge=0)
    reason: RetryReason | None = Field(None, description="Why the last attempt failed")
    terminated: bool = Field(False, description="Retries stopped because a cap was hit")
    termination_reason: TerminationReason | None = None


class ExecutionOutcome(BaseModel):
    """How one operation ended."""

    status: OperationStatus | None = Field(None, description="Merge status, None when the operation was dropped")
    saved: bool = Field(False, description="A write reached the store")
    attempts: int = Field(0, description="Failed attempts before the final one", ge=0)
    failure_reason: str | None = None
    record_key: RecordKey | None = None


class SyncStatus(BaseModel):
    """Read-only signals for one comment thread."""

    record_key: RecordKey | None = Field(None, description="Comments document id, None until the first save")
    pending_count: int = Field(..., description="Operations queued or in flight", ge=0)
    is_processing: bool = Field(..., description="The queue worker is running")
    sync_allowed: bool = Field(..., description="Pushed snapshots may replace local state")
    retry_state: RetryState
