"""Firestore document store using the Firebase Admin async client."""

import logging
from enum import Enum
from typing import Any, Sequence

from firebase_admin import firestore_async
from google.api_core import exceptions as gexc
from google.cloud.firestore_v1.base_query import FieldFilter

from .base import (
    BatchWriteFailure,
    Document,
    DocumentStore,
    DocumentUpdate,
    Filter,
    QueryFailure,
)

logger = logging.getLogger(__name__)

# Firestore rejects write batches with more than 500 operations
FIRESTORE_MAX_BATCH_SIZE = 500


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class FirestoreDocumentStore(DocumentStore):
    """
    Document store over a Firestore database.

    Queries use the composite (status, expiresAt) index the expiration
    job needs; batches map one-to-one onto Firestore WriteBatch commits,
    which are atomic.
    """

    def __init__(self, client: Any, max_batch_size: int = FIRESTORE_MAX_BATCH_SIZE):
        self._client = client
        self.max_batch_size = min(max_batch_size, FIRESTORE_MAX_BATCH_SIZE)

    @classmethod
    def from_app(cls, app: Any, max_batch_size: int = FIRESTORE_MAX_BATCH_SIZE) -> "FirestoreDocumentStore":
        return cls(firestore_async.client(app), max_batch_size=max_batch_size)

    async def query(self, collection: str, filters: Sequence[Filter]) -> list[Document]:
        query = self._client.collection(collection)
        for condition in filters:
            query = query.where(
                filter=FieldFilter(condition.field, condition.op, _plain(condition.value))
            )

        try:
            return [
                Document(id=snapshot.id, fields=snapshot.to_dict() or {})
                async for snapshot in query.stream()
            ]
        except gexc.GoogleAPIError as e:
            logger.error(f"Firestore query on {collection} failed: {e}")
            raise QueryFailure(f"Firestore query on {collection} failed: {e}") from e

    async def batch_update(self, collection: str, updates: Sequence[DocumentUpdate]) -> None:
        self._check_batch_size(updates)

        batch = self._client.batch()
        for item in updates:
            ref = self._client.collection(collection).document(item.id)
            batch.update(ref, {name: _plain(value) for name, value in item.changes.items()})

        try:
            await batch.commit()
        except gexc.GoogleAPIError as e:
            logger.error(f"Firestore batch commit on {collection} failed: {e}")
            raise BatchWriteFailure(
                f"Firestore batch commit on {collection} failed: {e}",
                failed_ids=[u.id for u in updates],
            ) from e
