from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool


def create_app_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create the async engine optimized for direct Postgres or Supabase pooler.

    - Direct (docker-compose:5432): standard pool with pre-ping.
    - Supabase pooler (pooler.supabase.*:6543): small pool so we don't hog sessions.
    - SQLite (local runs and tests): a single shared connection.

    Transaction poolers do not support prepared statements, so the asyncpg
    statement cache is disabled when a pooler URL is detected.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    # Heuristic: any Supabase pooler URL contains either ".supabase." or ".pooler."
    using_pooler = ".supabase." in database_url or ".pooler." in database_url

    if using_pooler:
        # Session pooler: keep pool small (each connection holds a backend)
        pool_size = 3
        max_overflow = 2
        pool_recycle = 1800  # ~30m
        connect_args = {"timeout": 10, "statement_cache_size": 0}
    else:
        pool_size = 10
        max_overflow = 10
        pool_recycle = 3600  # ~1h
        connect_args = {"timeout": 10}

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,
        pool_use_lifo=True,  # Reuse hot connections (beneficial with poolers)
        connect_args=connect_args,
    )
