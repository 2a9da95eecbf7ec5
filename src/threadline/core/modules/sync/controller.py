"""Fetch-merge-save cycle for a single operation, with retries."""

from collections.abc import Callable

import structlog

from threadline.core.modules.notification.base import Notifier
from threadline.core.modules.operation.applicators import apply_operation
from threadline.core.modules.operation.models import CommentOperation, OperationStatus, Severity, failure_severity
from threadline.core.modules.store.base import CommentStore
from threadline.core.modules.store.models import OwnerKeys, RecordKey, StoredDocument
from threadline.core.modules.sync.cooldown import CooldownGate
from threadline.core.modules.sync.models import (
    ExecutionOutcome,
    Messages,
    RetryState,
    TerminationReason,
    timeout_message,
)
from threadline.core.modules.sync.retry import Clock, RetryAttempt, RetryPolicy, SystemClock, classify_error, retry_call
from threadline.errors import NotFoundError, RetryExhaustedError

logger = structlog.get_logger(__name__)


class OperationExecutor:
    """Persists operations for one commented record.

    Every attempt re-reads the document and merges into that fresh copy,
    never into cached local state, then saves with the version token from the
    same read. Version conflicts and transient I/O errors are retried with
    backoff; structural merge failures and anything unclassified are reported
    once and dropped.
    """

    def __init__(
        self,
        store: CommentStore,
        owner: OwnerKeys,
        notifier: Notifier,
        gate: CooldownGate,
        policy: RetryPolicy | None = None,
        clock: Clock | None = None,
        record_key: RecordKey | None = None,
        on_record_created: Callable[[RecordKey], None] | None = None,
    ) -> None:
        self._store = store
        self._owner = owner
        self._notifier = notifier
        self._gate = gate
        self._policy = policy or RetryPolicy()
        self._clock = clock or SystemClock()
        self._on_record_created = on_record_created
        self.record_key = record_key
        self.retry_state = RetryState()

    async def execute(self, operation: CommentOperation) -> ExecutionOutcome:
        """Run one operation to a terminal state. Never raises for store or merge failures."""
        with structlog.contextvars.bound_contextvars(
            operation=operation.type, model_id=self._owner.model_id, record_id=self._owner.record_id
        ):
            return await self._execute(operation)

    async def _execute(self, operation: CommentOperation) -> ExecutionOutcome:
        self.retry_state = RetryState(operation_kind=operation.kind)
        attempts = 0

        def on_retry(attempt: RetryAttempt) -> None:
            nonlocal attempts
            attempts = attempt.attempt
            self.retry_state = RetryState(
                is_retrying=True, operation_kind=operation.kind, attempt_count=attempt.attempt, reason=attempt.reason
            )
            logger.info("operation_retry_scheduled", attempt=attempt.attempt, reason=attempt.reason, delay=attempt.delay)

        try:
            outcome = await retry_call(lambda: self._attempt(operation), self._policy, self._clock, on_retry)
        except RetryExhaustedError as e:
            termination = TerminationReason(e.reason)
            self.retry_state = RetryState(
                operation_kind=operation.kind,
                attempt_count=e.attempts,
                reason=classify_error(e.last_error) if e.last_error else None,
                terminated=True,
                termination_reason=termination,
            )
            message = (
                Messages.MAX_RETRIES_EXCEEDED
                if termination == TerminationReason.MAX_ATTEMPTS
                else timeout_message(self._policy.max_duration)
            )
            logger.error("operation_retries_exhausted", attempts=e.attempts, termination_reason=termination)
            self._notifier.notify(message, Severity.HIGH)
            return ExecutionOutcome(attempts=e.attempts, failure_reason=message, record_key=self.record_key)
        except NotFoundError as e:
            # The document vanished under us; the next operation starts over with discovery/creation
            logger.error("comments_record_missing", record_key=self.record_key, error=str(e))
            self.record_key = None
            self.retry_state = RetryState(operation_kind=operation.kind, attempt_count=attempts)
            self._notifier.notify(Messages.RECORD_MISSING, Severity.HIGH)
            return ExecutionOutcome(attempts=attempts, failure_reason=Messages.RECORD_MISSING)
        except Exception as e:
            logger.exception("operation_failed", error=str(e))
            self.retry_state = RetryState(operation_kind=operation.kind, attempt_count=attempts)
            self._notifier.notify(Messages.SAVE_FAILED, Severity.HIGH)
            return ExecutionOutcome(attempts=attempts, failure_reason=Messages.SAVE_FAILED, record_key=self.record_key)

        self.retry_state = RetryState(operation_kind=operation.kind, attempt_count=attempts)
        outcome = outcome.model_copy(update={"attempts": attempts})
        logger.debug("operation_finished", status=outcome.status, saved=outcome.saved, attempts=attempts)
        return outcome

    async def _attempt(self, operation: CommentOperation) -> ExecutionOutcome:
        if self.record_key is None:
            # Another client may have created the record since we last looked
            existing = await self._store.query_documents(self._owner)
            if existing:
                self.record_key = existing[0].record_key
                logger.info("comments_record_discovered", record_key=self.record_key)
                return await self._merge_and_save(operation, existing[0])
            return await self._create(operation)

        document = await self._store.fetch_document(self.record_key)
        return await self._merge_and_save(operation, document)

    async def _create(self, operation: CommentOperation) -> ExecutionOutcome:
        result = apply_operation([], operation)
        if result.is_failure:
            return self._report_structural_failure(operation, result.status, result.failure_reason)

        record_key = await self._store.create_document(self._owner, result.comments)
        self.record_key = record_key
        self._gate.start()
        logger.info("comments_record_created", record_key=record_key)
        if self._on_record_created is not None:
            self._on_record_created(record_key)
        return ExecutionOutcome(status=result.status, saved=True, record_key=record_key)

    async def _merge_and_save(self, operation: CommentOperation, document: StoredDocument) -> ExecutionOutcome:
        result = apply_operation(document.comments, operation)
        if result.is_failure:
            return self._report_structural_failure(operation, result.status, result.failure_reason)

        await self._store.update_document(document.record_key, result.comments, document.version)
        self._gate.start()
        return ExecutionOutcome(status=result.status, saved=True, record_key=document.record_key)

    def _report_structural_failure(
        self, operation: CommentOperation, status: OperationStatus, reason: str | None
    ) -> ExecutionOutcome:
        severity = failure_severity(operation.kind, status)
        logger.warning("operation_not_applicable", status=status, severity=severity)
        message = reason or Messages.SAVE_FAILED
        self._notifier.notify(message, severity)
        return ExecutionOutcome(status=status, failure_reason=message, record_key=self.record_key)
