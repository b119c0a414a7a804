"""
Centralized Test Configuration.
"""

from types import SimpleNamespace

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from collectives_backend.app.main import app
from collectives_backend.app.db.session import get_db, Base
from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.models.collective import Collective
from collectives_backend.app.models.enums import MemberRole
from collectives_backend.tests.factories import create_collective, create_user, create_expense
import collectives_backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
    
    async def ping(self):
        return True
    
    async def get(self, key):
        return self.store.get(key)
    
    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True
    
    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True
    
    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0
    
    async def exists(self, key):
        return 1 if key in self.store else 0


@pytest.fixture
def mock_redis(monkeypatch):
    """Swap the module-level Redis client used by token revocation."""
    client = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", client)
    return client


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    
    @event.listens_for(test_engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield test_engine
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_factory, mock_redis):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session
    
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def world(db_session):
    """
    SETUP
    - host: fiscal host, host_admin as admin, host_accountant as accountant
      - collective (hosted, active): collective_admin as admin, collective_accountant as accountant
        - event (child of collective, hosted by host)
    - author: submits expense (PENDING, 1000.00 USD) to collective
    - payee_admin: admin of author's profile collective
    - stranger: no roles
    """
    db = db_session
    host = await create_collective(db, "fiscal-host")
    collective = await create_collective(db, "webpack", host_collective_id=host.id)
    event_collective = await create_collective(
        db, "webpack-meetup", host_collective_id=host.id, parent_collective_id=collective.id
    )
    
    host_admin = await create_user(db, "hostadmin", roles=[(MemberRole.ADMIN, host)])
    host_accountant = await create_user(db, "hostaccountant", roles=[(MemberRole.ACCOUNTANT, host)])
    collective_admin = await create_user(db, "collectiveadmin", roles=[(MemberRole.ADMIN, collective)])
    collective_accountant = await create_user(db, "collectiveaccountant", roles=[(MemberRole.ACCOUNTANT, collective)])
    author = await create_user(db, "author")
    stranger = await create_user(db, "stranger")
    
    author_profile = await db.get(Collective, author.collective_id)
    payee_admin = await create_user(db, "payeeadmin", roles=[(MemberRole.ADMIN, author_profile)])
    
    expense = await create_expense(db, collective, author)
    
    return SimpleNamespace(
        host=host,
        collective=collective,
        event=event_collective,
        host_admin=host_admin,
        host_accountant=host_accountant,
        collective_admin=collective_admin,
        collective_accountant=collective_accountant,
        author=author,
        payee_admin=payee_admin,
        stranger=stranger,
        expense=expense,
    )


@pytest.fixture
def make_context(db_session):
    """Build a fresh RequestContext, as one request would."""
    def _make(user=None):
        return RequestContext(db=db_session, remote_user=user)
    return _make
