"""SQL document store backed by SQLAlchemy async sessions."""

import logging
from enum import Enum
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..core.database import session_scope
from ..models import DocumentMixin, MatchProposal, ScheduledMatch
from .base import (
    BatchWriteFailure,
    Document,
    DocumentStore,
    DocumentUpdate,
    Filter,
    QueryFailure,
)

logger = logging.getLogger(__name__)


DEFAULT_COLLECTIONS: dict[str, type[DocumentMixin]] = {
    "matchProposals": MatchProposal,
    "scheduledMatches": ScheduledMatch,
}


class SqlDocumentStore(DocumentStore):
    """
    Maps collections onto ORM tables.

    Each batch_update runs in a single transaction, so a batch commits or
    rolls back as a whole.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        collections: dict[str, type[DocumentMixin]] | None = None,
        max_batch_size: int = 1000,
        engine: AsyncEngine | None = None,
    ):
        self._session_factory = session_factory
        self._collections = collections or dict(DEFAULT_COLLECTIONS)
        self._engine = engine
        self.max_batch_size = max_batch_size

    def _model(self, collection: str) -> type[DocumentMixin]:
        try:
            return self._collections[collection]
        except KeyError:
            raise QueryFailure(f"Unknown collection {collection!r}") from None

    def _where(self, model: type[DocumentMixin], condition: Filter):
        try:
            column = getattr(model, model.attribute_for(condition.field))
        except KeyError as e:
            raise QueryFailure(str(e)) from e

        value = condition.value
        if isinstance(value, Enum):
            value = value.value
        return {
            "==": lambda: column == value,
            "!=": lambda: column != value,
            "<": lambda: column < value,
            "<=": lambda: column <= value,
            ">": lambda: column > value,
            ">=": lambda: column >= value,
        }[condition.op]()

    async def query(self, collection: str, filters: Sequence[Filter]) -> list[Document]:
        model = self._model(collection)
        statement = select(model).where(*[self._where(model, f) for f in filters])

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Query on {collection} failed: {e}")
            raise QueryFailure(f"Query on {collection} failed: {e}") from e

        return [Document(id=row.id, fields=row.to_document()) for row in rows]

    async def batch_update(self, collection: str, updates: Sequence[DocumentUpdate]) -> None:
        self._check_batch_size(updates)
        model = self._model(collection)
        ids = [u.id for u in updates]

        try:
            async with session_scope(self._session_factory) as session:
                for item in updates:
                    values = {model.attribute_for(name): value for name, value in item.changes.items()}
                    result = await session.execute(
                        update(model).where(model.id == item.id).values(**values)
                    )
                    if result.rowcount != 1:
                        # Raising inside the scope rolls the whole batch back
                        raise BatchWriteFailure(
                            f"Document {item.id} not found in {collection}",
                            failed_ids=ids,
                        )
        except SQLAlchemyError as e:
            logger.error(f"Batch update on {collection} rolled back: {e}")
            raise BatchWriteFailure(
                f"Batch update on {collection} failed: {e}",
                failed_ids=ids,
            ) from e
        except KeyError as e:
            raise BatchWriteFailure(str(e), failed_ids=ids) from e

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
