"""
Batched writes bounded by the store's atomic-batch limit.

Each group is committed atomically on its own; the run as a whole is not
all-or-nothing. Groups are disjoint by construction, so they may be
committed concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence, TypeVar

from ..stores import BatchWriteFailure, DocumentStore, DocumentUpdate

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchOutcome:
    """Result of committing a set of updates in groups."""
    committed_count: int
    batch_count: int


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive groups of at most ``size``."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def effective_batch_size(store: DocumentStore, requested: int) -> int:
    """Never exceed what the backend accepts in one atomic write."""
    return max(1, min(requested, store.max_batch_size))


async def commit_in_batches(
    store: DocumentStore,
    collection: str,
    updates: Sequence[DocumentUpdate],
    batch_size: int,
    concurrent: bool = False,
) -> BatchOutcome:
    """
    Commit ``updates`` in atomic groups of at most ``batch_size``.

    Sequential mode stops at the first failed group. Concurrent mode lets
    every group settle before raising. Either way the raised
    BatchWriteFailure carries how many documents were committed.
    """
    groups = chunked(updates, effective_batch_size(store, batch_size))
    if not groups:
        return BatchOutcome(committed_count=0, batch_count=0)

    if concurrent:
        return await _commit_concurrently(store, collection, groups)

    committed = 0
    for index, group in enumerate(groups, start=1):
        try:
            await store.batch_update(collection, group)
        except BatchWriteFailure as e:
            e.committed_count = committed
            logger.error(
                f"Batch {index}/{len(groups)} on {collection} failed after "
                f"{committed} document(s) committed: {e}"
            )
            raise
        except Exception as e:
            logger.error(f"Batch {index}/{len(groups)} on {collection} raised {type(e).__name__}: {e}")
            raise BatchWriteFailure(
                f"Batch {index}/{len(groups)} on {collection} failed: {e}",
                failed_ids=[u.id for u in group],
                committed_count=committed,
            ) from e
        committed += len(group)
        logger.debug(f"Committed batch {index}/{len(groups)} ({len(group)} documents) on {collection}")

    return BatchOutcome(committed_count=committed, batch_count=len(groups))


async def _commit_concurrently(
    store: DocumentStore,
    collection: str,
    groups: list[list[DocumentUpdate]],
) -> BatchOutcome:
    results = await asyncio.gather(
        *(store.batch_update(collection, group) for group in groups),
        return_exceptions=True,
    )

    committed = 0
    committed_batches = 0
    failures: list[BatchWriteFailure] = []
    for group, result in zip(groups, results):
        if isinstance(result, BatchWriteFailure):
            failures.append(result)
        elif isinstance(result, Exception):
            # Unexpected backend error: still report it with this group's ids
            wrapped = BatchWriteFailure(str(result), failed_ids=[u.id for u in group])
            wrapped.__cause__ = result
            failures.append(wrapped)
        elif isinstance(result, BaseException):
            raise result
        else:
            committed += len(group)
            committed_batches += 1

    if failures:
        failed_ids = [doc_id for failure in failures for doc_id in failure.failed_ids]
        logger.error(
            f"{len(failures)}/{len(groups)} batch(es) on {collection} failed; "
            f"{committed} document(s) committed"
        )
        raise BatchWriteFailure(
            f"{len(failures)} of {len(groups)} batches failed on {collection}: {failures[0]}",
            failed_ids=failed_ids,
            committed_count=committed,
        ) from failures[0]

    return BatchOutcome(committed_count=committed, batch_count=committed_batches)
