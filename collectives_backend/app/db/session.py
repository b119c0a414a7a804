"""
Database engine and sessions.

The service runs on PostgreSQL (asyncpg) in production; local runs and the
test suite use SQLite through aiosqlite. Every request gets its own
AsyncSession, and expense transitions commit or roll back on it as a unit.
"""

from typing import Any, Dict
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from collectives_backend.app.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool sizing only applies to server databases; SQLite rejects it."""
    options: Dict[str, Any] = {"echo": settings.db_echo}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Instances stay readable after commit; permission checks run on them after
# a transition has been committed.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency yielding the request's session."""
    async with AsyncSessionLocal() as session:
        yield session
