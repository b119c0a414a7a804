"""
Tests for database engine options.
"""

from collectives_backend.app.core.config import settings
from collectives_backend.app.db.session import engine_options


def test_sqlite_engine_skips_pool_sizing():
    options = engine_options("sqlite+aiosqlite:///./collectives.db")

    assert options["connect_args"] == {"check_same_thread": False}
    assert "pool_size" not in options
    assert "max_overflow" not in options


def test_postgres_engine_uses_configured_pool():
    options = engine_options("postgresql+asyncpg://user:password@db:5432/collectives")

    assert options["pool_size"] == settings.db_pool_size
    assert options["max_overflow"] == settings.db_max_overflow
    assert options["pool_pre_ping"] is True
    assert "connect_args" not in options
