"""
Alembic Environment Configuration

Migrations run on a sync driver even though the application is async:
- DATABASE_URL comes from settings and is converted to its sync form
- SQLModel metadata (users, links, analytics_events) drives autogenerate
- SQLite migrations use batch mode, since SQLite cannot ALTER most columns
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection
from sqlmodel import SQLModel

from shrinkly.core.setting import settings
from shrinkly.db import models  # noqa: F401  registers the tables on SQLModel.metadata

SYNC_DRIVERS = {
    "sqlite+aiosqlite://": "sqlite://",
    "postgresql+asyncpg://": "postgresql+psycopg2://",
}


def sync_database_url(url: str) -> str:
    """Map an async driver URL to the matching sync driver."""
    for async_prefix, sync_prefix in SYNC_DRIVERS.items():
        if url.startswith(async_prefix):
            return sync_prefix + url[len(async_prefix):]
    return url


config = context.config

database_url = sync_database_url(settings.DATABASE_URL)
config.set_main_option("sqlalchemy.url", database_url)
is_sqlite = database_url.startswith("sqlite")

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live database."""
    connectable = create_engine(database_url, poolclass=pool.NullPool)
    try:
        with connectable.connect() as connection:
            do_run_migrations(connection)
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
