"""
Match Completion: marks scheduled matches whose slot has passed.

Scheduled matches carry no deadline field, so past-ness is computed from
scheduledDate + slotId: a match is past 30 minutes (one timeslot) after
its slot starts. Timeslots sit on :00 and :30, which is why the job runs
at :01 and :31.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from ..models import MatchStatus
from ..stores import DocumentStore, DocumentUpdate, Filter
from .batching import commit_in_batches
from .expiration_scheduler import CycleResult, as_utc, utc_now
from .week_utils import compute_scheduled_date

logger = logging.getLogger(__name__)

SLOT_DURATION = timedelta(minutes=30)


@dataclass(frozen=True)
class CompletionConfig:
    """Configuration for match completion cycles."""
    collection: str = "scheduledMatches"
    batch_size: int = 500
    concurrent_batches: bool = False


def slot_start(match: Mapping[str, Any]) -> datetime | None:
    """UTC start of the match's slot, or None when the data is incomplete."""
    slot_id = match.get("slotId")
    if not isinstance(slot_id, str) or "_" not in slot_id:
        return None

    time_part = slot_id.split("_")[1]  # "2200"
    if len(time_part) < 4 or not time_part[:4].isdigit():
        return None
    hours, minutes = int(time_part[:2]), int(time_part[2:4])

    scheduled_date = match.get("scheduledDate")
    try:
        if not scheduled_date and match.get("weekId"):
            scheduled_date = compute_scheduled_date(match["weekId"], slot_id)
        if not isinstance(scheduled_date, str):
            return None
        day = datetime.strptime(scheduled_date, "%Y-%m-%d")
        return day.replace(hour=hours, minute=minutes, tzinfo=timezone.utc)
    except ValueError:
        return None


def is_match_past(match: Mapping[str, Any], now: datetime) -> bool:
    """True once ``now`` is strictly after slot start plus one timeslot."""
    start = slot_start(match)
    if start is None:
        return False
    return as_utc(now) > start + SLOT_DURATION


class MatchCompletionScheduler:
    """Runs completion cycles: UPCOMING -> COMPLETED for past matches."""

    def __init__(self, store: DocumentStore, config: CompletionConfig | None = None):
        self._store = store
        self._config = config or CompletionConfig()

    async def run_completion_cycle(
        self,
        now: datetime | None = None,
        dry_run: bool = False,
    ) -> CycleResult:
        now = as_utc(now) if now is not None else utc_now()
        logger.info(f"Running scheduled match completion at {now.isoformat()}")

        upcoming = await self._store.query(
            self._config.collection,
            [Filter("status", "==", MatchStatus.UPCOMING.value)],
        )
        if not upcoming:
            logger.info("No upcoming matches to check")
            return CycleResult(evaluated_at=now, found_count=0, updated_count=0, batch_count=0, dry_run=dry_run)

        past = [doc for doc in upcoming if is_match_past(doc.fields, now)]
        if not past:
            logger.info(f"Checked {len(upcoming)} upcoming match(es), none past")
            return CycleResult(evaluated_at=now, found_count=0, updated_count=0, batch_count=0, dry_run=dry_run)

        logger.info(f"Found {len(past)} past match(es) out of {len(upcoming)} upcoming")

        if dry_run:
            logger.info(f"Dry run: would complete {len(past)} match(es)")
            return CycleResult(evaluated_at=now, found_count=len(past), updated_count=0, batch_count=0, dry_run=True)

        outcome = await commit_in_batches(
            self._store,
            self._config.collection,
            [
                DocumentUpdate(id=doc.id, changes={"status": MatchStatus.COMPLETED.value, "completedAt": now})
                for doc in past
            ],
            batch_size=self._config.batch_size,
            concurrent=self._config.concurrent_batches,
        )

        logger.info(f"Marked {outcome.committed_count} match(es) as completed")
        return CycleResult(
            evaluated_at=now,
            found_count=len(past),
            updated_count=outcome.committed_count,
            batch_count=outcome.batch_count,
        )
