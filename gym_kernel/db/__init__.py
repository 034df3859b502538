"""Database layer: declarative base, engine and the transaction probe."""

from gym_kernel.db.base import Base, TrackedBase, UUIDString
from gym_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    probe_transaction_support,
    reset_engine,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "probe_transaction_support",
    "reset_engine",
]
