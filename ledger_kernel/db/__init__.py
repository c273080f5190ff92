"""Database layer: engine lifecycle, declarative bases, money helpers."""

from ledger_kernel.db.base import Base, TrackedBase, UUIDString
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_config,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from ledger_kernel.db.types import parse_money, round_money

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_config",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
    "parse_money",
    "round_money",
]
