"""Database package — shared engine and session factory."""

from app.db.base import Base, add_or_reread, close_db, get_session_factory, init_db

__all__ = [
    "Base",
    "add_or_reread",
    "close_db",
    "get_session_factory",
    "init_db",
]
