import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from eventhub.config import settings

logger = logging.getLogger(__name__)

# Environment-based configurations
if settings.database_url.startswith("sqlite"):
    engine = create_async_engine(settings.database_url, echo=settings.debug)
elif settings.environment == "production":
    engine = create_async_engine(
        settings.database_url,
        pool_size=20,
        max_overflow=50,
        pool_timeout=60,
        pool_recycle=1800,
        pool_pre_ping=True,
    )
else:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
    )

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Open a session for a single unit of work (one command)."""
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {e}")
            await db.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_db_context() as db:
        yield db


async def init_models() -> None:
    """Create tables that do not exist yet (development and tests)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
