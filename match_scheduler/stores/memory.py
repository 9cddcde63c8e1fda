"""In-memory document store for local runs and tests."""

import copy
import logging
from typing import Any, Sequence

from .base import (
    FILTER_OPERATORS,
    BatchWriteFailure,
    Document,
    DocumentStore,
    DocumentUpdate,
    Filter,
    QueryFailure,
)

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed store with the same batch semantics as the real backends.

    Every batch is validated before any document is touched, so a failing
    batch leaves the collection unchanged. ``query_count`` and
    ``batch_sizes`` record traffic for assertions.
    """

    def __init__(self, max_batch_size: int = 500):
        self.max_batch_size = max_batch_size
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.query_count = 0
        self.batch_sizes: list[int] = []

    def add(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._collections.setdefault(collection, {})[doc_id] = dict(fields)

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query(self, collection: str, filters: Sequence[Filter]) -> list[Document]:
        self.query_count += 1
        results = []
        for doc_id, fields in self._collections.get(collection, {}).items():
            if all(self._matches(fields, f) for f in filters):
                results.append(Document(id=doc_id, fields=copy.deepcopy(fields)))
        return results

    async def batch_update(self, collection: str, updates: Sequence[DocumentUpdate]) -> None:
        self._check_batch_size(updates)
        docs = self._collections.get(collection, {})

        missing = [u.id for u in updates if u.id not in docs]
        if missing:
            raise BatchWriteFailure(
                f"{len(missing)} document(s) not found in {collection}",
                failed_ids=[u.id for u in updates],
            )

        for update in updates:
            docs[update.id].update(update.changes)
        self.batch_sizes.append(len(updates))

    @staticmethod
    def _matches(fields: dict[str, Any], condition: Filter) -> bool:
        # Documents missing the field never match, as in Firestore
        if condition.field not in fields:
            return False
        value = fields[condition.field]
        try:
            return FILTER_OPERATORS[condition.op](value, condition.value)
        except TypeError as e:
            raise QueryFailure(f"Cannot compare {condition.field!r}: {e}") from e
