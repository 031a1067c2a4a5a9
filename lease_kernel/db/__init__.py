"""Database layer - engine, base classes and column types."""

from lease_kernel.db.base import UUID, Base, OwnedBase, UUIDString
from lease_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from lease_kernel.db.types import Money, Url, round_money, round_percent

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "OwnedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Url",
    "round_money",
    "round_percent",
]
