"""Database connection (PostgreSQL in deployment, any SQLAlchemy async URL works)"""
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator, Optional
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def _to_async_url(database_url: str) -> str:
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql+psycopg://"):
        return database_url.replace("postgresql+psycopg://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def _safe_url(database_url: str) -> str:
    return database_url.split("@")[1] if "@" in database_url else database_url


async def init_db(database_url: str, pool_size: int = 5, max_overflow: int = 10, echo: bool = False):
    """Create the engine and session factory"""
    global engine, async_session_maker

    if engine is not None:
        logger.warning("Database engine already initialized, skipping...")
        return

    database_url = _to_async_url(database_url)
    logger.info(f"Initializing database connection to: {_safe_url(database_url)}")

    if database_url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=300,
            pool_timeout=30,
            pool_size=pool_size,
            max_overflow=max_overflow,
        )

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    logger.info("Database engine initialized successfully")


async def create_tables():
    """Create missing tables (development and tests; deployments run migrations)"""
    # models must be imported so their tables are registered on Base.metadata
    from shared.database import models  # noqa: F401

    if engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency yielding a database session"""
    if async_session_maker is None:
        logger.error("Database not initialized! Call init_db() first.")
        raise RuntimeError("Database not initialized. Please check application startup.")

    async with async_session_maker() as session:
        yield session


async def close_db():
    """Dispose the engine"""
    global engine, async_session_maker
    if engine:
        logger.info("Closing database connections...")
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connections closed")
