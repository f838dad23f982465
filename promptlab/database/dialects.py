"""Dialect-specific statement helpers."""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(session: AsyncSession, table: Any) -> Any:
    """Return an INSERT construct that supports ``on_conflict_do_nothing``.

    Postgres (including Supabase) in production, SQLite in tests.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    msg = f"Upserts are not supported on dialect {dialect!r}"
    raise NotImplementedError(msg)
