"""SQLAlchemy ORM Models for the SQL store backend."""

from .base import Base, DocumentMixin, TimestampMixin
from .models import (
    # Enums
    MatchStatus,
    ProposalStatus,
    # Collections
    MatchProposal,
    ScheduledMatch,
)

__all__ = [
    # Base
    "Base",
    "DocumentMixin",
    "TimestampMixin",
    # Enums
    "ProposalStatus",
    "MatchStatus",
    # Collections
    "MatchProposal",
    "ScheduledMatch",
]
