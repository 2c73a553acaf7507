"""Database layer - engine, base classes, types, and locking."""

from credit_ledger.db.base import UUID, Base, TrackedBase, UUIDString
from credit_ledger.db.engine import create_tables, get_engine, get_session_factory
from credit_ledger.db.types import Credits, Hours, round_credits

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Credits",
    "Hours",
    "round_credits",
]
