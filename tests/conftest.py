"""
Shared test fixtures.

Each test gets its own SQLite file database built from the SQLModel
metadata, and the FastAPI app is pointed at it through dependency overrides.
"""

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from shrinkly.core.rate_limit import limiter
from shrinkly.db import models  # noqa: F401  registers the tables on SQLModel.metadata
from shrinkly.db.models import AnalyticsEvent
from shrinkly.db.session import get_session, get_session_maker
from shrinkly.db.sqlite_adapter import get_database_adapter
from shrinkly.main import app
from shrinkly.services.link_service import LinkService


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = get_database_adapter().create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_link(session):
    """Factory creating links through LinkService."""

    async def _make_link(original_url="https://example.com", **kwargs):
        return await LinkService(session).create_link(original_url, **kwargs)

    return _make_link


@pytest.fixture
def add_events(session):
    """Factory inserting analytics events directly, with explicit timestamps."""

    async def _add_events(link, count=1, clicked_at=None, **fields):
        clicked_at = clicked_at or datetime(2024, 1, 10, 12, 0, 0)
        events = [
            AnalyticsEvent(
                link_id=link.id,
                short_code=link.short_code,
                clicked_at=clicked_at,
                **fields
            )
            for _ in range(count)
        ]
        session.add_all(events)
        await session.commit()
        return events

    return _add_events


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
    limiter.enabled = True
