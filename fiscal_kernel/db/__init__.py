"""Database layer - engine, base classes, and money types."""

from fiscal_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from fiscal_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from fiscal_kernel.db.types import round_money, to_money

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "round_money",
    "to_money",
]
