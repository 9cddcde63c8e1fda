"""Document store backends for the scheduled jobs."""

from .base import (
    FILTER_OPERATORS,
    BatchWriteFailure,
    Document,
    DocumentStore,
    DocumentUpdate,
    Filter,
    QueryFailure,
    SchedulerError,
)
from .memory import InMemoryDocumentStore

__all__ = [
    "FILTER_OPERATORS",
    "BatchWriteFailure",
    "Document",
    "DocumentStore",
    "DocumentUpdate",
    "Filter",
    "QueryFailure",
    "SchedulerError",
    "InMemoryDocumentStore",
    "build_store",
]


def build_store(settings) -> DocumentStore:
    """Create the store backend selected by ``settings.store_backend``.

    Backend modules are imported lazily so a deployment only needs the
    client libraries of the backend it uses.
    """
    if settings.store_backend == "memory":
        return InMemoryDocumentStore(max_batch_size=settings.batch_size)

    if settings.store_backend == "sql":
        from ..core.database import create_engine_from_settings, create_session_factory
        from ..models import MatchProposal, ScheduledMatch
        from .sql import SqlDocumentStore

        engine = create_engine_from_settings(settings)
        return SqlDocumentStore(
            create_session_factory(engine),
            collections={
                settings.proposals_collection: MatchProposal,
                settings.scheduled_matches_collection: ScheduledMatch,
            },
            max_batch_size=settings.sql_max_batch_size,
            engine=engine,
        )

    from ..core.firebase import get_firebase_app
    from .firestore import FirestoreDocumentStore

    return FirestoreDocumentStore.from_app(get_firebase_app(settings))
