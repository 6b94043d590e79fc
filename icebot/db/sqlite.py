"""
SQLite database connection and session management.
Uses async SQLAlchemy for non-blocking operations.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from icebot.db.models import Base


class Database:
    """Async database manager."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        if url is None or echo is None:
            from icebot.config import settings

            url = url or settings.db_url
            echo = settings.debug if echo is None else echo
        self.url = url
        self.echo = echo
        self._engine = None
        self._session_factory = None

    @property
    def is_memory(self) -> bool:
        return ":memory:" in self.url

    async def init(self) -> None:
        """Initialize database engine and create tables."""
        engine_kwargs = {"echo": self.echo}

        if "sqlite" in self.url:
            if self.is_memory:
                # One shared connection, otherwise every checkout sees an empty DB
                engine_kwargs["poolclass"] = StaticPool
            else:
                # Extract path from URL: sqlite+aiosqlite:///path/to/db.db
                path_part = self.url.split("///", 1)[-1]
                Path(path_part).parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_async_engine(self.url, **engine_kwargs)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        # Create all tables
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close database connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session."""
        if not self._session_factory:
            await self.init()

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
