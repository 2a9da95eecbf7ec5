"""Shared pytest fixtures."""

import pytest
from support import FakeClock, FlakyStore, RecordingNotifier, make_comment, make_reply

from threadline.core.modules.comment.models import Author
from threadline.core.modules.store.memory import InMemoryCommentStore
from threadline.core.modules.store.models import OwnerKeys
from threadline.core.modules.sync.cooldown import CooldownGate
from threadline.core.modules.sync.retry import RetryPolicy


@pytest.fixture
def alice():
    """Create the default comment author."""
    return Author(name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    """Create a second user."""
    return Author(name="Bob", email="bob@example.com")


@pytest.fixture
def owner():
    return OwnerKeys(model_id="projects", record_id="rec-1")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def memory_store():
    return InMemoryCommentStore()


@pytest.fixture
def flaky_store(memory_store):
    return FlakyStore(memory_store)


@pytest.fixture
def gate(clock):
    return CooldownGate(8.0, clock)


@pytest.fixture
def policy():
    return RetryPolicy()


@pytest.fixture
def thread_with_parent(alice):
    """Comment tree with one top-level comment holding one reply."""
    return [make_comment("c1", alice, replies=[make_reply("r1", "c1", alice)])]
