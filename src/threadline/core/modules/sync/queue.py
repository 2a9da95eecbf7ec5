import asyncio

import structlog

from threadline.core.modules.operation.models import CommentOperation
from threadline.core.modules.sync.controller import OperationExecutor
from threadline.core.modules.sync.cooldown import CooldownGate
from threadline.core.modules.sync.models import RetryState

logger = structlog.get_logger(__name__)


class OperationQueue:
    """FIFO channel of operations drained by a single worker task.

    Operation N+1 never starts before operation N has finished (saved or
    dropped), since later operations may reference comments created by earlier
    ones. An operation that fails is logged and the queue moves on.
    """

    def __init__(self, executor: OperationExecutor, gate: CooldownGate) -> None:
        self._executor = executor
        self._gate = gate
        self._channel: asyncio.Queue[CommentOperation] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._in_flight: CommentOperation | None = None
        self._closed = False

    def enqueue(self, operation: CommentOperation) -> None:
        """Queue an operation and make sure the worker is running. Does not wait."""
        if self._closed:
            raise RuntimeError("Operation queue is closed")
        self._channel.put_nowait(operation)
        logger.debug("operation_enqueued", operation=operation.type, pending=self.pending_count)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while not self._channel.empty():
            operation = self._channel.get_nowait()
            self._in_flight = operation
            try:
                await self._executor.execute(operation)
            except Exception:
                logger.exception("operation_dropped", operation=operation.type)
            finally:
                self._in_flight = None
                self._channel.task_done()

    @property
    def pending_count(self) -> int:
        """Queued operations plus the one being processed."""
        return self._channel.qsize() + (1 if self._in_flight is not None else 0)

    @property
    def is_processing(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def retry_state(self) -> RetryState:
        return self._executor.retry_state

    @property
    def sync_allowed(self) -> bool:
        """Pushed snapshots may replace local state only when nothing is pending and the cooldown is over."""
        return self.pending_count == 0 and not self._gate.in_cooldown

    async def join(self) -> None:
        """Wait until every queued operation has finished."""
        await self._channel.join()

    async def close(self) -> None:
        """Refuse new operations, then let the queued ones finish."""
        self._closed = True
        await self.join()
        if self._worker is not None:
            await self._worker
