"""
Database connection and session management for SQLAlchemy 2.0.
Configured for async operations with PostgreSQL (asyncpg) or SQLite (aiosqlite).
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import event, text
from urllib.parse import urlparse
import logging

from clinic_cms.config import settings

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()

IN_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.
    Gallery cascades (category -> subcategories -> images) depend on it.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    Pool settings only apply to PostgreSQL. An in-memory SQLite database is
    shared through a StaticPool so every session sees the same tables.
    """
    engine_args = {
        "echo": False,  # Set to True for SQL query logging in development
    }

    if url.startswith("postgresql"):
        engine_args.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # Verify connections before using
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": "clinic-cms-backend"
                }
            }
        })
    elif url.startswith("sqlite") and ":memory:" in url:
        engine_args.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    new_engine = create_async_engine(url, **engine_args)
    if url.startswith("sqlite"):
        enable_sqlite_foreign_keys(new_engine)
    return new_engine


engine = build_engine(settings.DATABASE_URL or IN_MEMORY_URL)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """
    FastAPI dependency for database sessions.
    Provides async database session with automatic commit/rollback.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            # Use db session here
            pass
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}", exc_info=True)
            raise
        finally:
            await session.close()


def _validate_database_url(url: str) -> tuple[bool, str]:
    """
    Validate database URL and provide diagnostic information.
    Returns (is_valid, diagnostic_message)
    """
    if not url:
        return True, "DATABASE_URL is empty, using in-memory SQLite"

    try:
        parsed = urlparse(url)

        if url.startswith("sqlite"):
            return True, f"SQLite database at {parsed.path or ':memory:'}"

        if not url.startswith(("postgresql://", "postgresql+asyncpg://")):
            return False, f"Invalid database URL scheme. Expected postgresql+asyncpg:// or sqlite+aiosqlite://, got: {parsed.scheme}"

        hostname = parsed.hostname
        if not hostname:
            return False, "No hostname found in DATABASE_URL"

        return True, f"URL format valid. Hostname: {hostname}, Port: {parsed.port or 5432}, Database: {parsed.path or '/postgres'}"

    except Exception as e:
        return False, f"Error parsing DATABASE_URL: {str(e)}"


async def init_db(create_tables: bool = settings.AUTO_CREATE_TABLES):
    """
    Initialize database connection.
    Verifies the connection and, when enabled, creates missing tables.
    """
    is_valid, diagnostic = _validate_database_url(settings.DATABASE_URL)
    if not is_valid:
        logger.error(f"Invalid DATABASE_URL: {diagnostic}")
        raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

    logger.info(f"Database URL validation: {diagnostic}")

    # Register the models on Base.metadata
    from clinic_cms import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables verified")
        logger.info("Database connection initialized successfully")


async def close_db():
    """
    Close database connections.
    Can be used for shutdown events.
    """
    await engine.dispose()
    logger.info("Database connections closed")
