"""
Person Registry Backend — Database Handle & Session Management
================================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI session dependency.
Why:   Keeps all connection-pool logic in one place and out of the routes.
How:   A `Database` object owns the engine and session factory. It is created
       in the application lifespan, stored on `app.state.database`, and
       disposed at shutdown. Routes receive sessions through `get_db_session`,
       which rolls back on error and closes the session. Writes are
       committed by PersonService before the response is built: FastAPI
       may run the code after `yield` only once the response has gone out.
Who:   The app factory (lifecycle), route handlers (via Depends), and tests
       (which build their own `Database` against SQLite).

Connection Pooling:
    pool_size / max_overflow come from settings and only apply to server
    databases. SQLite URLs get SQLAlchemy's default pool for the dialect,
    since aiosqlite does not accept queue-pool sizing arguments.
"""

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object so Alembic and `Database.create_all`
    see every table.
    """
    pass


class Database:
    """
    Process-wide handle around the async engine and its session factory.

    Lifecycle:
        1. Database(url) — configuration only, no connections opened
        2. connect()     — builds the engine and session factory
        3. session()     — new AsyncSession per request
        4. dispose()     — closes every pooled connection

    Why an object on app.state instead of a module-level engine:
        Tests can point a fresh app at a throwaway database, and nothing
        opens a connection as a side effect of importing this module.
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self.url = url or settings.database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    def connect(self) -> None:
        """Create the engine and session factory. Safe to call more than once."""
        if self.engine is not None:
            return

        engine_kwargs = {"echo": self.echo, "pool_pre_ping": settings.db_pool_pre_ping}
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=3600,
            )

        self.engine = create_async_engine(self.url, **engine_kwargs)
        # expire_on_commit=False: rows returned by a handler stay readable
        # after get_db_session commits
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        if self._session_factory is None:
            raise RuntimeError("Database.connect() must be called before opening sessions")
        return self._session_factory()

    async def create_all(self) -> None:
        """
        Create all tables registered on Base.metadata.

        Used by tests and throwaway SQLite setups; real deployments run
        `alembic upgrade head` instead.
        """
        # Register models on the metadata before creating tables
        from app.models import person  # noqa: F401

        self.connect()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close all pooled connections. Called from the lifespan on shutdown."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Looks up the Database handle stored on app.state at startup
        2. Yields a fresh session to the route handler
        3. On error: rolls back and re-raises
        4. Always: closes the session (returns connection to pool); anything
           the handler did not commit is discarded

    Example usage in a route:
        @router.get("/persons/{person_id}")
        async def get_person(person_id: int, db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
