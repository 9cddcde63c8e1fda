"""
Expiration Scheduler: moves overdue match proposals to EXPIRED.

A proposal expires when, at the cycle's evaluation time, its status is
still ACTIVE and its expiresAt is strictly before that time. Each cycle:
1. Captures one evaluation timestamp
2. Queries ACTIVE proposals with expiresAt < now
3. Commits status/updatedAt changes in atomic batches
4. Reports the count

The status filter is re-evaluated on every cycle, which makes repeated or
overlapping runs safe: a second run finds nothing the first one expired.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ..models import ProposalStatus
from ..stores import Document, DocumentStore, DocumentUpdate, Filter
from .batching import commit_in_batches


logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True)
class ExpiryConfig:
    """Configuration for expiration cycles."""

    collection: str = "matchProposals"

    # Upper bound per atomic write; clamped to the store's own limit
    batch_size: int = 500

    # Commit disjoint batches concurrently instead of one after another
    concurrent_batches: bool = False

    # Overdue proposals older than this flag the cycle as stale
    staleness_threshold: timedelta = timedelta(days=8)


DEFAULT_CONFIG = ExpiryConfig()


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class CycleResult:
    """Outcome of one expiration cycle."""
    evaluated_at: datetime
    found_count: int
    updated_count: int
    batch_count: int
    dry_run: bool = False
    oldest_expires_at: datetime | None = None
    stale: bool = False

    @property
    def is_noop(self) -> bool:
        return self.found_count == 0

    def to_dict(self) -> dict:
        return {
            "evaluated_at": self.evaluated_at.isoformat(),
            "found_count": self.found_count,
            "updated_count": self.updated_count,
            "batch_count": self.batch_count,
            "dry_run": self.dry_run,
            "oldest_expires_at": self.oldest_expires_at.isoformat() if self.oldest_expires_at else None,
            "stale": self.stale,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize to UTC; naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# EXPIRATION SCHEDULER
# =============================================================================


class ExpirationScheduler:
    """
    Runs expiration cycles against a document store.

    The store and the evaluation timestamp are explicit inputs, so tests can
    pass an in-memory store and a fixed clock.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: ExpiryConfig = DEFAULT_CONFIG,
    ):
        self._store = store
        self._config = config

    async def find_expired_proposals(self, now: datetime) -> list[Document]:
        """Active proposals whose deadline is strictly before ``now``."""
        return await self._store.query(
            self._config.collection,
            [
                Filter("status", "==", ProposalStatus.ACTIVE.value),
                Filter("expiresAt", "<", now),
            ],
        )

    async def run_expiration_cycle(
        self,
        now: datetime | None = None,
        dry_run: bool = False,
    ) -> CycleResult:
        """
        Expire every overdue active proposal.

        Args:
            now: Evaluation timestamp; defaults to the current UTC time.
                 Used for the query and as updatedAt on every write.
            dry_run: Query and report without writing

        Returns:
            CycleResult with found and updated counts

        Raises:
            QueryFailure: before any write
            BatchWriteFailure: after committing the batches preceding it
        """
        now = as_utc(now) if now is not None else utc_now()
        logger.info(f"Running proposal expiration at {now.isoformat()}")

        expired = await self.find_expired_proposals(now)

        if not expired:
            logger.info("No expired proposals found")
            return CycleResult(evaluated_at=now, found_count=0, updated_count=0, batch_count=0, dry_run=dry_run)

        oldest = min(
            (as_utc(doc.get("expiresAt")) for doc in expired if doc.get("expiresAt") is not None),
            default=None,
        )
        stale = oldest is not None and now - oldest > self._config.staleness_threshold

        logger.info(f"Found {len(expired)} expired proposal(s) to update")
        if stale:
            logger.warning(
                f"Oldest overdue proposal expired at {oldest.isoformat()}, "
                f"more than {self._config.staleness_threshold} before {now.isoformat()}"
            )

        if dry_run:
            logger.info(f"Dry run: would expire {len(expired)} proposal(s)")
            return CycleResult(
                evaluated_at=now,
                found_count=len(expired),
                updated_count=0,
                batch_count=0,
                dry_run=True,
                oldest_expires_at=oldest,
                stale=stale,
            )

        updates = [
            DocumentUpdate(
                id=doc.id,
                changes={"status": ProposalStatus.EXPIRED.value, "updatedAt": now},
            )
            for doc in expired
        ]
        outcome = await commit_in_batches(
            self._store,
            self._config.collection,
            updates,
            batch_size=self._config.batch_size,
            concurrent=self._config.concurrent_batches,
        )

        logger.info(f"Expired {outcome.committed_count} proposal(s) in {outcome.batch_count} batch(es)")
        return CycleResult(
            evaluated_at=now,
            found_count=len(expired),
            updated_count=outcome.committed_count,
            batch_count=outcome.batch_count,
            oldest_expires_at=oldest,
            stale=stale,
        )


async def run_expiration_cycle(
    store: DocumentStore,
    now: datetime | None = None,
    config: ExpiryConfig = DEFAULT_CONFIG,
) -> CycleResult:
    """Run one expiration cycle with an explicit store and clock."""
    return await ExpirationScheduler(store, config).run_expiration_cycle(now)
