"""
Document Store Interface.

The scheduled jobs only need two things from a backend:
1. A filtered query over one collection
2. An atomic batch update of documents by id, bounded by a backend limit

Backends translate their own exceptions into QueryFailure and
BatchWriteFailure so callers handle one taxonomy.
"""

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence


# =============================================================================
# EXCEPTIONS
# =============================================================================


class SchedulerError(Exception):
    """Base exception for store and scheduler operations."""
    pass


class QueryFailure(SchedulerError):
    """Store unreachable or query malformed. Nothing was written."""
    pass


class BatchWriteFailure(SchedulerError):
    """An atomic batch commit failed.

    Batches committed before the failure stand. ``committed_count`` is
    filled in by the scheduler that issued the batches.
    """

    def __init__(
        self,
        message: str,
        failed_ids: Sequence[str] = (),
        committed_count: int = 0,
    ):
        super().__init__(message)
        self.failed_ids = list(failed_ids)
        self.committed_count = committed_count


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


# Comparison operators every backend must support
FILTER_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class Filter:
    """A single ``field op value`` query condition."""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise QueryFailure(f"Unsupported filter operator {self.op!r} on {self.field!r}")


@dataclass
class Document:
    """A document read from a collection."""
    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


@dataclass(frozen=True)
class DocumentUpdate:
    """Field changes to apply to one document."""
    id: str
    changes: dict[str, Any]


# =============================================================================
# STORE INTERFACE
# =============================================================================


class DocumentStore(ABC):
    """Abstract base for document store backends."""

    # Maximum number of document writes in one atomic batch
    max_batch_size: int = 500

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[Filter],
    ) -> list[Document]:
        """
        Return all documents in ``collection`` matching every filter.

        Raises:
            QueryFailure: store unavailable or filter malformed
        """
        pass

    @abstractmethod
    async def batch_update(
        self,
        collection: str,
        updates: Sequence[DocumentUpdate],
    ) -> None:
        """
        Apply all updates atomically: either every document changes or none.

        Raises:
            BatchWriteFailure: the commit failed; no document in this batch changed
            ValueError: more updates than ``max_batch_size``
        """
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None

    def _check_batch_size(self, updates: Sequence[DocumentUpdate]) -> None:
        if len(updates) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(updates)} exceeds store limit of {self.max_batch_size}"
            )
