"""Shared fixtures: fixed clocks, in-memory stores and a SQLite-backed SQL store."""

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from match_scheduler.core.database import create_session_factory, init_db
from match_scheduler.stores import (
    BatchWriteFailure,
    Document,
    DocumentUpdate,
    Filter,
    InMemoryDocumentStore,
    QueryFailure,
)
from match_scheduler.stores.sql import SqlDocumentStore


PROPOSALS = "matchProposals"
MATCHES = "scheduledMatches"


class FlakyStore(InMemoryDocumentStore):
    """In-memory store whose Nth batch_update calls fail (1-based)."""

    def __init__(self, fail_on: Sequence[int] = (), max_batch_size: int = 500):
        super().__init__(max_batch_size=max_batch_size)
        self.fail_on = set(fail_on)
        self.batch_attempts = 0

    async def batch_update(self, collection: str, updates: Sequence[DocumentUpdate]) -> None:
        self.batch_attempts += 1
        if self.batch_attempts in self.fail_on:
            raise BatchWriteFailure("injected commit failure", failed_ids=[u.id for u in updates])
        await super().batch_update(collection, updates)


class UnavailableStore(InMemoryDocumentStore):
    """Store whose queries always fail."""

    def __init__(self):
        super().__init__()
        self.batch_attempts = 0

    async def query(self, collection: str, filters: Sequence[Filter]) -> list[Document]:
        raise QueryFailure("store unavailable")

    async def batch_update(self, collection: str, updates: Sequence[DocumentUpdate]) -> None:
        self.batch_attempts += 1
        await super().batch_update(collection, updates)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation timestamp."""
    return datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def yesterday(now: datetime) -> datetime:
    return now - timedelta(days=1)


@pytest.fixture
def tomorrow(now: datetime) -> datetime:
    return now + timedelta(days=1)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
async def sql_engine():
    """A shared in-memory SQLite database with the tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_session_factory(sql_engine):
    return create_session_factory(sql_engine)


@pytest.fixture
def sql_store(sql_session_factory) -> SqlDocumentStore:
    return SqlDocumentStore(sql_session_factory, max_batch_size=2)


def add_proposal(
    store: InMemoryDocumentStore,
    doc_id: str,
    expires_at: datetime,
    status: str = "active",
) -> None:
    store.add(PROPOSALS, doc_id, {"status": status, "expiresAt": expires_at, "weekId": "2026-41"})
