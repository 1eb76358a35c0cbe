"""
Tests for link creation, editing and deletion.
"""

import pytest
from sqlalchemy import func, select

from shrinkly.core.exceptions import (
    DatabaseError,
    InvalidURLError,
    LinkNotFoundError,
    SlugTakenError,
)
from shrinkly.db.models import AnalyticsEvent, Link, LinkStatus, User
from shrinkly.services import link_service
from shrinkly.services.analytics_service import AnalyticsAggregator
from shrinkly.services.link_service import BASE62_CHARS, LinkService, generate_short_code


async def count(session, column):
    result = await session.execute(select(func.count(column)))
    return result.scalar_one()


def test_generate_short_code_is_base62():
    code = generate_short_code()
    assert len(code) == 6
    assert all(c in BASE62_CHARS for c in code)
    assert len(generate_short_code(10)) == 10


class TestCreateLink:

    async def test_random_code(self, make_link):
        link = await make_link("https://example.com/page")

        assert link.id is not None
        assert len(link.short_code) == 6
        assert link.custom_slug is None
        assert link.clicks == 0
        assert link.status == LinkStatus.active.value
        assert link.domain == "shrinkly.link"
        assert link.short_url == f"shrinkly.link/{link.short_code}"

    async def test_custom_slug_becomes_short_code(self, make_link):
        link = await make_link(custom_slug="my-launch", domain="go.example.com", tags="promo")

        assert link.short_code == "my-launch"
        assert link.custom_slug == "my-launch"
        assert link.short_url == "go.example.com/my-launch"
        assert link.tags == "promo"

    async def test_taken_slug_is_rejected(self, make_link):
        await make_link(custom_slug="taken")

        with pytest.raises(SlugTakenError):
            await make_link("https://other.example.com", custom_slug="taken")

    async def test_invalid_slug_is_rejected(self, make_link):
        with pytest.raises(InvalidURLError):
            await make_link(custom_slug="no spaces/allowed")

    @pytest.mark.parametrize("url", [
        "",
        "example.com",
        "ftp://example.com/file",
        "https://localhost-without-dot",
        "javascript:alert(1)",
    ])
    async def test_invalid_url_is_rejected(self, make_link, url):
        with pytest.raises(InvalidURLError):
            await make_link(url)

    async def test_random_code_collision_is_retried(self, session, make_link, monkeypatch):
        await make_link(custom_slug="abc123")
        codes = iter(["abc123", "xyz789"])
        monkeypatch.setattr(link_service, "generate_short_code", lambda: next(codes))

        link = await make_link("https://example.com/second")

        assert link.short_code == "xyz789"
        assert await count(session, Link.id) == 2

    async def test_gives_up_after_repeated_collisions(self, make_link, monkeypatch):
        await make_link(custom_slug="abc123")
        monkeypatch.setattr(link_service, "generate_short_code", lambda: "abc123")

        with pytest.raises(DatabaseError):
            await make_link("https://example.com/second")


class TestUpdateLink:

    async def test_update_fields(self, session, make_link):
        link = await make_link()
        link_id = link.id

        updated = await LinkService(session).update_link(
            link_id,
            original_url="https://example.org/new",
            status=LinkStatus.inactive,
            tags="archived",
        )

        assert updated.original_url == "https://example.org/new"
        assert updated.status == "inactive"
        assert updated.tags == "archived"

    async def test_unchanged_fields_are_kept(self, session, make_link):
        link = await make_link(tags="keep")

        updated = await LinkService(session).update_link(link.id, status=LinkStatus.inactive)

        assert updated.original_url == "https://example.com"
        assert updated.tags == "keep"

    async def test_invalid_destination_is_rejected(self, session, make_link):
        link = await make_link()

        with pytest.raises(InvalidURLError):
            await LinkService(session).update_link(link.id, original_url="not a url")

    async def test_missing_link(self, session):
        with pytest.raises(LinkNotFoundError):
            await LinkService(session).update_link(999, tags="x")


class TestDeleteLink:

    async def test_delete_cascades_to_events(self, session, make_link, add_events):
        link = await make_link()
        other = await make_link("https://example.org")
        await add_events(link, count=3)
        await add_events(other, count=2)

        await LinkService(session, cascade_analytics=True).delete_link(link.id)

        assert await count(session, Link.id) == 1
        assert await count(session, AnalyticsEvent.id) == 2

    async def test_delete_without_cascade_keeps_events(self, session, make_link, add_events):
        link = await make_link()
        link_id = link.id
        await add_events(link, count=3)

        await LinkService(session, cascade_analytics=False).delete_link(link_id)

        assert await count(session, Link.id) == 0
        assert await count(session, AnalyticsEvent.id) == 3

        top = await AnalyticsAggregator(session).top_links()
        assert top == [{
            "link_id": link_id,
            "clicks": 3,
            "short_url": "Unknown",
            "original_url": "Unknown",
        }]

    async def test_deleted_link_id_is_not_reused(self, session, make_link, add_events):
        link = await make_link()
        old_id = link.id
        await add_events(link, count=3)
        await LinkService(session, cascade_analytics=False).delete_link(old_id)

        replacement = await make_link("https://new.example.com")

        assert replacement.id != old_id
        top = await AnalyticsAggregator(session).top_links()
        assert top[0]["link_id"] == old_id
        assert top[0]["original_url"] == "Unknown"

    async def test_delete_missing_link(self, session):
        with pytest.raises(LinkNotFoundError):
            await LinkService(session).delete_link(404)

    async def test_bulk_delete_returns_count(self, session, make_link):
        first = await make_link()
        second = await make_link("https://example.org")
        await make_link("https://example.net")

        deleted = await LinkService(session).delete_links([first.id, second.id, 999])

        assert deleted == 2
        assert await count(session, Link.id) == 1

    async def test_bulk_delete_nothing(self, session):
        assert await LinkService(session).delete_links([]) == 0

    async def test_delete_user_always_cascades(self, session, make_link, add_events):
        user = User(email="owner@example.com", name="Owner")
        session.add(user)
        await session.commit()
        user_id = user.id

        owned = await make_link(user_id=user_id)
        kept = await make_link("https://example.org")
        await add_events(owned, count=2)
        await add_events(kept, count=1)

        await LinkService(session, cascade_analytics=False).delete_user(user_id)

        assert await count(session, User.id) == 0
        remaining = await session.execute(select(Link.id))
        assert remaining.scalars().all() == [kept.id]
        assert await count(session, AnalyticsEvent.id) == 1
