"""Database package."""

from decivue.core.database.base import Base
from decivue.core.database.connection import (
    close_database,
    get_db_session,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "Base",
    "close_database",
    "get_db_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
