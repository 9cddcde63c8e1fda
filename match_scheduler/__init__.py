"""match_scheduler: scheduled state transitions for team matchmaking."""

__version__ = "1.0.0"
