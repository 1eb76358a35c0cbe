"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
Uses a database abstraction layer to support different database backends.

Key Features:
- Database abstraction: Easy to switch between SQLite, PostgreSQL, etc.
- Async session management: Proper async context management
- Error handling: Automatic rollback on exceptions
- Session factory dependency: background tasks open their own sessions
  from the factory, since the request session is closed once the
  response is sent
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shrinkly.core.setting import settings
from shrinkly.db.sqlite_adapter import get_database_adapter

# To switch databases, just change the adapter returned by get_database_adapter()
db_adapter = get_database_adapter()

engine = db_adapter.create_engine(
    settings.DATABASE_URL
)

async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    This function:
    - Creates a new async session
    - Yields it to the endpoint
    - Automatically commits on success
    - Rolls back on exception

    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(session: AsyncSession = Depends(get_session)):
            pass
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_maker() -> async_sessionmaker:
    """Dependency returning the session factory used by background tasks."""
    return async_session_maker


def get_db_adapter():
    """Dependency returning the active database adapter."""
    return db_adapter
