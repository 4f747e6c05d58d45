"""
Database session management.
Handles SQLite connection and session lifecycle with async support.
"""
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import event, Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.config import get_settings
from backend.app.db.base import SQLModel
from backend.app.logging_config import get_logger

logger = get_logger(__name__)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """
    Enable foreign key constraints for SQLite.

    Note: This event listener applies to ALL sync engines (including the one backing async).
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_async_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create and configure the async database engine.

    Args:
        database_url: sqlite:/// URL; defaults to Settings.DATABASE_URL

    Returns:
        AsyncEngine: SQLAlchemy async engine configured for SQLite with aiosqlite
    """
    db_url = database_url or get_settings().DATABASE_URL
    if db_url.startswith("sqlite:///"):
        db_path = db_url.replace("sqlite:///", "")
        if not db_path.startswith("/"):  # relative path
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    # Convert sqlite:/// to sqlite+aiosqlite:/// for async
    async_db_url = db_url.replace("sqlite:///", "sqlite+aiosqlite:///")

    return create_async_engine(
        async_db_url,
        echo=False,
        # NullPool for SQLite - each connection is independent
        poolclass=NullPool,
        )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create every table known to SQLModel.metadata (no-op for existing ones).

    Args:
        engine: Async engine of the target database
    """
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database schema ready", tables=sorted(SQLModel.metadata.tables))


_engine: Optional[AsyncEngine] = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session for the caller's request scope.

    Usage:
        async for session in get_session():
            result = await panel_actions.get_account(session, account_id)

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    global _engine
    if _engine is None:
        _engine = get_async_engine()

    async with AsyncSession(_engine, expire_on_commit=False) as session:
        yield session
