"""Tests for batched commits."""

import pytest

from match_scheduler.services.batching import chunked, commit_in_batches, effective_batch_size
from match_scheduler.stores import BatchWriteFailure, DocumentUpdate, InMemoryDocumentStore

from .conftest import FlakyStore


def _updates(store, n):
    for i in range(n):
        store.add("things", f"d{i}", {"status": "active"})
    return [DocumentUpdate(id=f"d{i}", changes={"status": "done"}) for i in range(n)]


class CrashingStore(InMemoryDocumentStore):
    """Store whose Nth batch_update raises a plain backend error."""

    def __init__(self, crash_on: int):
        super().__init__()
        self.crash_on = crash_on
        self.batch_attempts = 0

    async def batch_update(self, collection, updates):
        self.batch_attempts += 1
        if self.batch_attempts == self.crash_on:
            raise RuntimeError("connection reset")
        await super().batch_update(collection, updates)


class TestChunked:

    def test_exact_multiple(self):
        assert chunked([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_remainder_goes_last(self):
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        assert chunked([], 500) == []

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestCommitInBatches:

    def test_effective_batch_size_respects_store_limit(self):
        assert effective_batch_size(InMemoryDocumentStore(max_batch_size=100), 500) == 100
        assert effective_batch_size(InMemoryDocumentStore(max_batch_size=500), 50) == 50

    async def test_empty_updates_issue_no_writes(self):
        store = InMemoryDocumentStore()

        outcome = await commit_in_batches(store, "things", [], batch_size=10)

        assert outcome.committed_count == 0
        assert outcome.batch_count == 0
        assert store.batch_sizes == []

    async def test_sequential_stops_at_first_failure(self):
        store = FlakyStore(fail_on=[2])
        updates = _updates(store, 6)

        with pytest.raises(BatchWriteFailure) as exc_info:
            await commit_in_batches(store, "things", updates, batch_size=2)

        assert exc_info.value.committed_count == 2
        assert exc_info.value.failed_ids == ["d2", "d3"]
        # Third batch never attempted
        assert store.batch_attempts == 2
        assert store.get("things", "d4")["status"] == "active"

    async def test_concurrent_collects_all_failures(self):
        store = FlakyStore(fail_on=[1, 3])
        updates = _updates(store, 6)

        with pytest.raises(BatchWriteFailure) as exc_info:
            await commit_in_batches(store, "things", updates, batch_size=2, concurrent=True)

        assert exc_info.value.committed_count == 2
        assert sorted(exc_info.value.failed_ids) == ["d0", "d1", "d4", "d5"]
        assert store.get("things", "d2")["status"] == "done"

    async def test_batch_with_missing_document_changes_nothing(self):
        store = InMemoryDocumentStore()
        store.add("things", "d0", {"status": "active"})
        updates = [
            DocumentUpdate(id="d0", changes={"status": "done"}),
            DocumentUpdate(id="gone", changes={"status": "done"}),
        ]

        with pytest.raises(BatchWriteFailure):
            await commit_in_batches(store, "things", updates, batch_size=10)

        assert store.get("things", "d0")["status"] == "active"

    async def test_store_rejects_oversized_batch(self):
        store = InMemoryDocumentStore(max_batch_size=1)
        updates = _updates(store, 2)

        with pytest.raises(ValueError):
            await store.batch_update("things", updates)

    async def test_sequential_wraps_unexpected_error(self):
        store = CrashingStore(crash_on=2)
        updates = _updates(store, 6)

        with pytest.raises(BatchWriteFailure) as exc_info:
            await commit_in_batches(store, "things", updates, batch_size=2)

        assert exc_info.value.committed_count == 2
        assert exc_info.value.failed_ids == ["d2", "d3"]
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert store.batch_attempts == 2

    async def test_concurrent_wraps_unexpected_error(self):
        store = CrashingStore(crash_on=2)
        updates = _updates(store, 6)

        with pytest.raises(BatchWriteFailure) as exc_info:
            await commit_in_batches(store, "things", updates, batch_size=2, concurrent=True)

        assert exc_info.value.committed_count == 4
        assert exc_info.value.failed_ids == ["d2", "d3"]
        assert isinstance(exc_info.value.__cause__.__cause__, RuntimeError)
        assert store.get("things", "d0")["status"] == "done"
        assert store.get("things", "d4")["status"] == "done"
        assert store.get("things", "d2")["status"] == "active"
