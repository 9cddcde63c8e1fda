"""Scheduled state-transition services."""

from .batching import BatchOutcome, chunked, commit_in_batches
from .expiration_scheduler import (
    CycleResult,
    ExpirationScheduler,
    ExpiryConfig,
    run_expiration_cycle,
)
from .match_completion import (
    CompletionConfig,
    MatchCompletionScheduler,
    is_match_past,
)

__all__ = [
    # Batching
    "BatchOutcome",
    "chunked",
    "commit_in_batches",
    # Proposal expiration (primary)
    "CycleResult",
    "ExpirationScheduler",
    "ExpiryConfig",
    "run_expiration_cycle",
    # Match completion
    "CompletionConfig",
    "MatchCompletionScheduler",
    "is_match_past",
]
