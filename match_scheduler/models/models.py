"""SQLAlchemy ORM models mirroring the matchmaking document collections.

Document field names (camelCase) are the store contract; the tables use
snake_case columns and declare the mapping in ``document_fields``.
"""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, DocumentMixin, TimestampMixin


# =============================================================================
# ENUMS
# =============================================================================


class ProposalStatus(str, PyEnum):
    ACTIVE = "active"
    EXPIRED = "expired"  # Deadline passed while still active
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class MatchStatus(str, PyEnum):
    UPCOMING = "upcoming"
    COMPLETED = "completed"  # Slot has passed
    CANCELLED = "cancelled"


# =============================================================================
# PROPOSALS
# =============================================================================


class MatchProposal(Base, DocumentMixin, TimestampMixin):
    """A time-bounded scheduling offer between two teams."""

    __tablename__ = "match_proposals"

    document_fields = {
        "status": "status",
        "expiresAt": "expires_at",
        "updatedAt": "updated_at",
        "createdAt": "created_at",
        "weekId": "week_id",
        "proposerTeamId": "proposer_team_id",
        "opponentTeamId": "opponent_team_id",
    }

    status: Mapped[str] = mapped_column(String(32), nullable=False, default=ProposalStatus.ACTIVE.value)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    week_id: Mapped[str | None] = mapped_column(String(7), nullable=True)
    proposer_team_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    opponent_team_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        # Serves the expiration query: status == active AND expires_at < now
        Index("ix_match_proposals_status_expires_at", "status", "expires_at"),
    )


# =============================================================================
# SCHEDULED MATCHES
# =============================================================================


class ScheduledMatch(Base, DocumentMixin):
    """A match both teams agreed on, occupying one timeslot."""

    __tablename__ = "scheduled_matches"

    document_fields = {
        "status": "status",
        "scheduledDate": "scheduled_date",
        "slotId": "slot_id",
        "weekId": "week_id",
        "completedAt": "completed_at",
    }

    status: Mapped[str] = mapped_column(String(32), nullable=False, default=MatchStatus.UPCOMING.value, index=True)
    scheduled_date: Mapped[str | None] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD
    slot_id: Mapped[str | None] = mapped_column(String(16), nullable=True)  # e.g. wed_2000
    week_id: Mapped[str | None] = mapped_column(String(7), nullable=True)  # YYYY-WW
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
