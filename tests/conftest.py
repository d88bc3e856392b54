"""Shared fixtures for the MindScribe test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from mindscribe.backend import Backend
from mindscribe.config import MindScribeConfig, StorageConfig
from mindscribe.identity.local import LocalIdentityProvider
from mindscribe.identity.models import UserIdentity
from mindscribe.objects.local import LocalObjectStore
from mindscribe.posts.lifecycle import PostLifecycleManager
from mindscribe.store.memory import InMemoryDocumentStore

TEST_ROUNDS = 4


class FakeClock:
    """Deterministic clock; every call advances by ``step``."""

    def __init__(
        self,
        start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=UTC),
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now += self.step
        return value

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def owner() -> UserIdentity:
    return UserIdentity(uid="u1", email="ada@example.com", display_name="Ada")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def manager(store: InMemoryDocumentStore, owner: UserIdentity, clock: FakeClock):
    return PostLifecycleManager(store, owner, clock=clock)


@pytest.fixture
def backend(tmp_path: Path) -> Backend:
    """In-memory backend with the cheapest bcrypt work factor."""
    config = MindScribeConfig(storage=StorageConfig(data_dir=str(tmp_path)))
    return Backend(
        config=config,
        identity=LocalIdentityProvider(None, config.auth, rounds=TEST_ROUNDS),
        store=InMemoryDocumentStore(),
        objects=LocalObjectStore(tmp_path / "objects"),
    )
