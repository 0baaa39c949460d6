"""Async SQLAlchemy plumbing for the preference store.

Rows are addressed by opaque 24-character hex document ids. The API
process shares one ``DatabaseManager``; each pipeline run builds its own
because Celery tasks run in a fresh event loop.
"""

import re
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, MetaData, String, func
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from goplanit.core.config import settings

# Naming convention for constraints
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

DOCUMENT_ID_LENGTH = 24
DOCUMENT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def new_document_id() -> str:
    """Generate an opaque 24-character hex identifier."""
    return secrets.token_hex(DOCUMENT_ID_LENGTH // 2)


def is_valid_document_id(value: str | None) -> bool:
    """Check that ``value`` has the shape of a document id."""
    return bool(value) and DOCUMENT_ID_PATTERN.match(value) is not None


class Base(DeclarativeBase):
    """Declarative base: document id plus created/updated timestamps."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    id: Mapped[str] = mapped_column(
        String(DOCUMENT_ID_LENGTH),
        primary_key=True,
        default=new_document_id,
        sort_order=-10,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        sort_order=100,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        sort_order=101,
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class DatabaseManager:
    """Lazily built engine and session factory for one event loop."""

    def __init__(self, url: str | None = None) -> None:
        self._url = url or str(settings.DATABASE_URL)
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def _engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}
        # SQLite (local runs and tests) uses a pool without sizing knobs
        if not self._url.startswith("sqlite"):
            options.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=30,
                pool_recycle=1800,  # Recycle connections after 30 minutes
            )
        return options

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self._url, **self._engine_options())
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session, rolling back if the block raises."""
        session = self.session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def init(self) -> None:
        """Initialize database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close all database connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Global database manager instance (API process)
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for FastAPI dependencies."""
    async with db_manager.session() as session:
        yield session


async def init_db() -> None:
    """Create missing tables."""
    # Models must be imported so their tables are registered on Base.metadata
    import goplanit.domains.preference.models  # noqa: F401

    await db_manager.init()


async def close_db() -> None:
    """Close database connections."""
    await db_manager.close()
