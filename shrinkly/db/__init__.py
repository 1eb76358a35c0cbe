"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter: SQLite-specific implementation (default)
- Session management: Database session creation and management

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods (engine config and date-part expressions)
3. Update get_database_adapter() in sqlite_adapter.py to return the new adapter
"""

from shrinkly.db.interface import DatabaseAdapter
from shrinkly.db.session import (
    async_session_maker,
    db_adapter,
    engine,
    get_db_adapter,
    get_session,
    get_session_maker,
)

__all__ = [
    "DatabaseAdapter",
    "get_session",
    "get_session_maker",
    "get_db_adapter",
    "async_session_maker",
    "db_adapter",
    "engine",
]
