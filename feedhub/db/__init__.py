"""Database layer: ORM models, connection management and repositories."""
from feedhub.db.base import Base
from feedhub.db.connection import (
    DatabaseManager,
    close_database,
    get_session,
    health_check,
    init_database,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "close_database",
    "get_session",
    "health_check",
    "init_database",
]
