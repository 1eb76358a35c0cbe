"""
Database Abstraction Interface

This module defines the database abstraction layer that allows switching between
different database backends (SQLite, PostgreSQL, etc.) without changing the
rest of the codebase.

Besides engine configuration, adapters provide the date-part SQL expressions
the analytics queries group by, since every dialect spells these differently.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool
from sqlalchemy.sql.elements import ColumnElement


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Update the factory function to return the new adapter
    """

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options

        Returns:
            Configured AsyncEngine instance
        """
        pass

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """
        Get the connection pool class for this database type.

        Returns:
            Pool class (e.g., NullPool for SQLite, QueuePool for PostgreSQL)
            or None to use default
        """
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Get connection arguments specific to this database type."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Get additional engine configuration specific to this database type."""
        pass

    @abstractmethod
    def date_bucket(self, column: Any) -> ColumnElement:
        """
        Calendar day of a UTC timestamp column as a 'YYYY-MM-DD' string.
        """
        pass

    @abstractmethod
    def day_of_week(self, column: Any) -> ColumnElement:
        """
        Day of week of a UTC timestamp column as an integer 1-7, 1 = Sunday.
        """
        pass

    @abstractmethod
    def hour_of_day(self, column: Any) -> ColumnElement:
        """
        Hour of a UTC timestamp column as an integer 0-23.
        """
        pass
