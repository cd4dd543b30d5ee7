"""
Pytest configuration and fixtures for eventhub tests
"""

import os
import sys
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_IDENTITY", "admin-pubkey")
os.environ.setdefault("JSON_LOGS", "false")

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

from eventhub.database import Base  # noqa: E402
from eventhub.router import CommandRouter  # noqa: E402
from eventhub.services.browse_log_service import BrowseLogService, LedgerConfig  # noqa: E402

ADMIN = "admin-pubkey"
ANONYMOUS = "anonymous"

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Controllable replacement for the ledger clock (naive UTC)."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
async def db_engine():
    """
    Fresh in-memory database per test. StaticPool keeps every session on the
    same connection so they all see the same tables.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 9, 0, 0))


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig(admin_identity=ADMIN)


@pytest.fixture
def ledger(ledger_config, clock) -> BrowseLogService:
    return BrowseLogService(ledger_config, clock=clock)


@pytest.fixture
def command_router(ledger, session_factory) -> CommandRouter:
    return CommandRouter(ledger, anonymous_identity=ANONYMOUS, session_factory=session_factory)
