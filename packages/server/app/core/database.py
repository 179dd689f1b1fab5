"""
Database connection, session management and transaction helpers.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()
log = structlog.get_logger()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only)."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str = "write") -> AsyncIterator[AsyncSession]:
    """Run a multi-write sequence as one unit of work.

    Commits when the block exits cleanly. On any exception the transaction is
    rolled back and the original exception propagates unchanged.
    """
    try:
        yield session
        await session.commit()
    except Exception as exc:
        await session.rollback()
        log.warning("transaction.aborted", operation=operation, error=type(exc).__name__)
        raise


async def insert_ignore(session: AsyncSession, model: Any, **values: Any) -> bool:
    """Insert a row unless it collides with an existing key (set-style add).

    Returns whether a row was written.

    Values go through the model first so Python-side defaults (timestamps)
    are filled in the same way as for ORM inserts.
    """
    row = model(**values).model_dump()
    bind = session.get_bind()
    dialect = bind.dialect.name if bind is not None else ""

    if dialect == "postgresql":
        stmt = pg_insert(model).values(**row).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(**row).on_conflict_do_nothing()
    else:
        raise RuntimeError(f"insert_ignore is not supported on dialect '{dialect}'")
    result = await session.execute(stmt)
    return bool(result.rowcount)
