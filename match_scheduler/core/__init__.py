"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    create_engine_from_settings,
    create_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "create_engine_from_settings",
    "create_session_factory",
    "init_db",
    "session_scope",
]
