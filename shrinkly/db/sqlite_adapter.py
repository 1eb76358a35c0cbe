"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration and behavior is encapsulated here.

Key characteristics:
- File-based (single .db file)
- No server required
- Single writer at a time (file locking); concurrent writers wait on the
  busy timeout instead of failing immediately
"""

from typing import Any

from sqlalchemy import Integer, cast, func
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.elements import ColumnElement

from shrinkly.db.interface import DatabaseAdapter

# Seconds a connection waits for a competing writer to release its lock
SQLITE_BUSY_TIMEOUT = 30


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    Timestamps are stored as ISO text, so date parts are computed with
    SQLite's strftime().
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create SQLite async engine with appropriate configuration.

        SQLite-specific configuration:
        - NullPool: a fresh connection per session (file-based, no pooling needed)
        - check_same_thread=False: Required for async SQLite operations
        - timeout: busy timeout for concurrent writers

        Args:
            database_url: SQLite connection string (sqlite+aiosqlite:///...)
            **kwargs: Additional engine options (merged with SQLite defaults)

        Returns:
            Configured AsyncEngine for SQLite
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            poolclass=self.get_pool_class(),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def date_bucket(self, column: Any) -> ColumnElement:
        return func.strftime('%Y-%m-%d', column)

    def day_of_week(self, column: Any) -> ColumnElement:
        # %w is 0-6 with Sunday = 0
        return cast(func.strftime('%w', column), Integer) + 1

    def hour_of_day(self, column: Any) -> ColumnElement:
        return cast(func.strftime('%H', column), Integer)


def get_database_adapter() -> DatabaseAdapter:
    """
    Factory function to get the database adapter.

    Returns SQLiteAdapter by default. To switch to PostgreSQL, create a
    PostgreSQLAdapter class and update this function.

    Returns:
        DatabaseAdapter instance
    """
    return SQLiteAdapter()
