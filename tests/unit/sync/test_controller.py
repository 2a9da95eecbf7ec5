"""Tests for the fetch-merge-save cycle of a single operation."""

import asyncio

import pytest
import pytest_asyncio
from support import make_comment, make_reply, text

from threadline.core.modules.operation.models import (
    AddComment,
    AddReply,
    DeleteComment,
    EditComment,
    OperationStatus,
    Severity,
    UpvoteAction,
    UpvoteComment,
)
from threadline.core.modules.store.models import RecordKey
from threadline.core.modules.sync.controller import OperationExecutor
from threadline.core.modules.sync.cooldown import CooldownGate
from threadline.core.modules.sync.models import Messages, RetryReason, TerminationReason, timeout_message
from threadline.core.modules.sync.retry import RetryPolicy
from threadline.errors import TransientStoreError, VersionConflictError


@pytest.fixture
def created_keys():
    return []


@pytest.fixture
def executor(flaky_store, owner, notifier, gate, policy, clock, created_keys):
    return OperationExecutor(
        flaky_store, owner, notifier, gate, policy=policy, clock=clock, on_record_created=created_keys.append
    )


@pytest_asyncio.fixture
async def seeded(executor, alice):
    """Executor whose record already holds comment c1 with reply r1."""
    await executor.execute(AddComment(comment=make_comment("c1", alice, replies=[make_reply("r1", "c1", alice)])))
    return executor


class TestRecordCreation:
    @pytest.mark.asyncio
    async def test_first_operation_creates_record(self, executor, memory_store, alice, created_keys, gate):
        outcome = await executor.execute(AddComment(comment=make_comment("c1", alice)))

        assert outcome.saved
        assert outcome.status == OperationStatus.APPLIED
        assert executor.record_key == outcome.record_key
        assert created_keys == [outcome.record_key]
        assert len(memory_store.records) == 1
        assert gate.in_cooldown

    @pytest.mark.asyncio
    async def test_later_operations_update(self, executor, memory_store, alice, created_keys):
        await executor.execute(AddComment(comment=make_comment("c1", alice)))
        await executor.execute(AddComment(comment=make_comment("c2", alice)))

        document = await memory_store.fetch_document(executor.record_key)
        assert [c.id for c in document.comments] == ["c2", "c1"]
        assert document.version == 2
        assert len(created_keys) == 1

    @pytest.mark.asyncio
    async def test_existing_record_is_discovered(self, executor, memory_store, owner, alice, created_keys):
        """Test a record created elsewhere is adopted instead of duplicated."""
        key = await memory_store.create_document(owner, [make_comment("c0", alice)])

        outcome = await executor.execute(AddComment(comment=make_comment("c1", alice)))

        assert outcome.record_key == key
        assert created_keys == []
        assert [c.id for c in (await memory_store.fetch_document(key)).comments] == ["c1", "c0"]

    @pytest.mark.asyncio
    async def test_concurrent_first_comments_converge(self, memory_store, owner, notifier, clock, alice, bob):
        """Test two clients racing to create the record end up sharing one."""
        first = OperationExecutor(memory_store, owner, notifier, CooldownGate(8.0, clock), clock=clock)
        second = OperationExecutor(memory_store, owner, notifier, CooldownGate(8.0, clock), clock=clock)

        outcomes = await asyncio.gather(
            first.execute(AddComment(comment=make_comment("a1", alice))),
            second.execute(AddComment(comment=make_comment("b1", bob))),
        )

        assert all(outcome.saved for outcome in outcomes)
        assert len(memory_store.records) == 1
        document = (await memory_store.query_documents(owner))[0]
        assert {c.id for c in document.comments} == {"a1", "b1"}
        assert first.record_key == second.record_key == document.record_key
        assert notifier.alerts == []


class TestRetries:
    @pytest.mark.asyncio
    async def test_conflicts_retry_until_saved(self, seeded, flaky_store, memory_store, clock, notifier):
        flaky_store.update_errors = [VersionConflictError() for _ in range(3)]

        outcome = await seeded.execute(EditComment(id="c1", new_content=text("edited")))

        assert outcome.saved
        assert outcome.attempts == 3
        assert clock.sleeps == pytest.approx([0.1, 0.2, 0.4])
        assert (await memory_store.fetch_document(seeded.record_key)).comments[0].content == text("edited")
        assert notifier.alerts == []
        assert not seeded.retry_state.is_retrying
        assert seeded.retry_state.attempt_count == 3

    @pytest.mark.asyncio
    async def test_each_attempt_rereads_the_document(self, seeded, flaky_store, memory_store, bob):
        """Test a write made by another client between fetch and save is kept."""
        original_update = flaky_store.update_document
        interleaved = False

        async def update_after_other_client(record_key, comments, expected_version):
            nonlocal interleaved
            if not interleaved:
                interleaved = True
                document = await memory_store.fetch_document(record_key)
                await memory_store.update_document(
                    record_key, [make_comment("x1", bob), *document.comments], document.version
                )
            await original_update(record_key, comments, expected_version)

        flaky_store.update_document = update_after_other_client

        outcome = await seeded.execute(AddComment(comment=make_comment("c2", bob)))

        assert outcome.saved
        assert outcome.attempts == 1
        comments = (await memory_store.fetch_document(seeded.record_key)).comments
        assert [c.id for c in comments] == ["c2", "x1", "c1"]

    @pytest.mark.asyncio
    async def test_network_errors_use_network_backoff(self, seeded, flaky_store, clock):
        flaky_store.fetch_errors = [TransientStoreError("reset"), TransientStoreError("reset")]

        outcome = await seeded.execute(DeleteComment(id="c1"))

        assert outcome.saved
        assert clock.sleeps == pytest.approx([0.5, 1.0])

    @pytest.mark.asyncio
    async def test_retry_state_while_waiting(self, seeded, flaky_store, clock):
        observed = []
        flaky_store.update_errors = [VersionConflictError()]
        original_sleep = clock.sleep

        async def watching_sleep(seconds):
            observed.append(seeded.retry_state)
            await original_sleep(seconds)

        clock.sleep = watching_sleep
        await seeded.execute(DeleteComment(id="c1"))

        assert observed[0].is_retrying
        assert observed[0].reason == RetryReason.VERSION_CONFLICT
        assert observed[0].attempt_count == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_notify(self, flaky_store, owner, notifier, gate, clock, alice):
        executor = OperationExecutor(
            flaky_store, owner, notifier, gate, policy=RetryPolicy(max_attempts=3), clock=clock
        )
        flaky_store.query_errors = [TransientStoreError("down") for _ in range(5)]

        outcome = await executor.execute(AddComment(comment=make_comment("c1", alice)))

        assert not outcome.saved
        assert outcome.attempts == 3
        assert notifier.alerts == [(Messages.MAX_RETRIES_EXCEEDED, Severity.HIGH)]
        assert executor.retry_state.terminated
        assert executor.retry_state.termination_reason == TerminationReason.MAX_ATTEMPTS
        assert executor.retry_state.reason == RetryReason.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_timeout_notifies(self, flaky_store, owner, notifier, gate, clock, alice):
        executor = OperationExecutor(
            flaky_store, owner, notifier, gate, policy=RetryPolicy(max_duration=1.0), clock=clock
        )
        flaky_store.query_errors = [TransientStoreError("down") for _ in range(5)]

        await executor.execute(AddComment(comment=make_comment("c1", alice)))

        assert notifier.messages == ["Operation timed out after 1 second. Please try again."]
        assert executor.retry_state.termination_reason == TerminationReason.TIMEOUT


class TestStructuralFailures:
    @pytest.mark.asyncio
    async def test_edit_with_missing_parent_is_not_retried(self, seeded, flaky_store, clock, notifier):
        outcome = await seeded.execute(EditComment(id="r1", parent_comment_id="gone", new_content=text("x")))

        assert outcome.status == OperationStatus.FAILED_PARENT_MISSING
        assert outcome.failure_reason
        assert outcome.attempts == 0
        assert not outcome.saved
        assert clock.sleeps == []
        assert flaky_store.update_calls == 0
        assert notifier.alerts == [(outcome.failure_reason, Severity.HIGH)]

    @pytest.mark.asyncio
    async def test_reply_to_deleted_comment(self, seeded, notifier, alice):
        await seeded.execute(DeleteComment(id="c1"))
        outcome = await seeded.execute(AddReply(parent_comment_id="c1", reply=make_reply("r2", "c1", alice)))

        assert outcome.status == OperationStatus.FAILED_PARENT_MISSING
        assert notifier.alerts == [(outcome.failure_reason, Severity.HIGH)]

    @pytest.mark.asyncio
    async def test_upvote_on_deleted_comment_is_low_severity(self, seeded, notifier, bob):
        outcome = await seeded.execute(UpvoteComment(id="c9", user=bob, action=UpvoteAction.ADD))

        assert outcome.status == OperationStatus.FAILED_TARGET_MISSING
        assert notifier.alerts == [(outcome.failure_reason, Severity.LOW)]

    @pytest.mark.asyncio
    async def test_reply_before_any_record(self, executor, memory_store, notifier, alice):
        outcome = await executor.execute(AddReply(parent_comment_id="c1", reply=make_reply("r1", "c1", alice)))

        assert outcome.status == OperationStatus.FAILED_PARENT_MISSING
        assert memory_store.records == []


class TestUnexpectedFailures:
    @pytest.mark.asyncio
    async def test_unclassified_error_is_reported_once(self, seeded, flaky_store, notifier, clock):
        flaky_store.update_errors = [ValueError("corrupt payload")]

        outcome = await seeded.execute(DeleteComment(id="c1"))

        assert not outcome.saved
        assert outcome.failure_reason == Messages.SAVE_FAILED
        assert notifier.alerts == [(Messages.SAVE_FAILED, Severity.HIGH)]
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_missing_record_resets_key(self, flaky_store, owner, notifier, gate, clock, memory_store, alice):
        """Test a vanished document is reported and the next operation starts over."""
        executor = OperationExecutor(flaky_store, owner, notifier, gate, clock=clock, record_key=RecordKey("gone"))

        outcome = await executor.execute(DeleteComment(id="c1"))

        assert outcome.failure_reason == Messages.RECORD_MISSING
        assert executor.record_key is None
        assert notifier.messages == [Messages.RECORD_MISSING]

        outcome = await executor.execute(AddComment(comment=make_comment("c1", alice)))
        assert outcome.saved
        assert len(memory_store.records) == 1


class TestTimeoutMessage:
    """The timeout alert names the configured wall-clock cap."""

    def test_default_cap(self, policy):
        assert timeout_message(policy.max_duration) == "Operation timed out after 5 minutes. Please try again."

    def test_single_minute(self):
        assert timeout_message(60.0) == "Operation timed out after 1 minute. Please try again."

    def test_seconds(self):
        assert timeout_message(90.0) == "Operation timed out after 90 seconds. Please try again."
        assert timeout_message(2.5) == "Operation timed out after 2.5 seconds. Please try again."
