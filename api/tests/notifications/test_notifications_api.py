"""
Tests for notification endpoints:
- GET /api/v1/notifications
- GET /api/v1/notifications/unread-count
- PATCH /api/v1/notifications/{id}
- PATCH /api/v1/notifications/mark-all-read
"""

from datetime import timedelta
from uuid import uuid4

import pytest_asyncio
from httpx import AsyncClient

from factories import create_comment, create_notification, set_preferences
from untitledone.database import utcnow


@pytest_asyncio.fixture
async def alice_notifications(db_session, project_with_alice, owner, alice):
    """Three mention notifications for alice, oldest first; the oldest is read."""
    comment = await create_comment(db_session, project_with_alice, owner, body="@alice have a listen")
    now = utcnow()
    return [
        await create_notification(db_session, alice, comment, is_read=True, created_at=now - timedelta(minutes=30)),
        await create_notification(db_session, alice, comment, created_at=now - timedelta(minutes=20)),
        await create_notification(db_session, alice, comment, created_at=now - timedelta(minutes=10)),
    ]


class TestListNotifications:
    """GET /api/v1/notifications tests."""

    async def test_list_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/notifications")
        assert response.status_code == 401

    async def test_list_returns_newest_first(
        self, async_client: AsyncClient, alice, alice_notifications, auth_headers
    ):
        response = await async_client.get("/api/v1/notifications", headers=auth_headers(alice))

        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data] == [str(n.id) for n in reversed(alice_notifications)]

    async def test_list_embeds_comment_and_project(
        self, async_client: AsyncClient, alice, project_with_alice, alice_notifications, auth_headers
    ):
        response = await async_client.get("/api/v1/notifications", headers=auth_headers(alice))

        item = response.json()[0]
        assert item["type"] == "mention"
        assert item["comment"]["body"] == "@alice have a listen"
        assert item["project"] == {"id": str(project_with_alice.id), "name": "Summer Vibes EP"}

    async def test_unread_filter(self, async_client: AsyncClient, alice, alice_notifications, auth_headers):
        response = await async_client.get(
            "/api/v1/notifications",
            params={"filter": "unread"},
            headers=auth_headers(alice),
        )

        data = response.json()
        assert len(data) == 2
        assert all(item["is_read"] is False for item in data)

    async def test_limit_and_cursor(self, async_client: AsyncClient, alice, alice_notifications, auth_headers):
        first = await async_client.get(
            "/api/v1/notifications",
            params={"limit": 2},
            headers=auth_headers(alice),
        )
        first_page = first.json()
        assert len(first_page) == 2

        second = await async_client.get(
            "/api/v1/notifications",
            params={"limit": 2, "cursor": first_page[-1]["created_at"]},
            headers=auth_headers(alice),
        )
        second_page = second.json()
        assert [item["id"] for item in second_page] == [str(alice_notifications[0].id)]

    async def test_other_users_notifications_are_hidden(
        self, async_client: AsyncClient, bob, alice_notifications, auth_headers
    ):
        response = await async_client.get("/api/v1/notifications", headers=auth_headers(bob))
        assert response.json() == []

    async def test_invalid_filter_returns_400(self, async_client: AsyncClient, alice, auth_headers):
        response = await async_client.get(
            "/api/v1/notifications",
            params={"filter": "archived"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_limit_above_maximum_returns_400(self, async_client: AsyncClient, alice, auth_headers):
        response = await async_client.get(
            "/api/v1/notifications",
            params={"limit": 101},
            headers=auth_headers(alice),
        )
        assert response.status_code == 400

    async def test_in_app_disabled_hides_mentions(
        self, async_client: AsyncClient, db_session, alice, alice_notifications, auth_headers
    ):
        await set_preferences(db_session, alice, in_app_mentions_enabled=False)

        response = await async_client.get("/api/v1/notifications", headers=auth_headers(alice))

        assert response.json() == []


class TestUnreadCount:
    """GET /api/v1/notifications/unread-count tests."""

    async def test_counts_unread(self, async_client: AsyncClient, alice, alice_notifications, auth_headers):
        response = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json() == {"count": 2}

    async def test_zero_without_notifications(self, async_client: AsyncClient, bob, auth_headers):
        response = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(bob))
        assert response.json() == {"count": 0}

    async def test_in_app_disabled_counts_zero(
        self, async_client: AsyncClient, db_session, alice, alice_notifications, auth_headers
    ):
        await set_preferences(db_session, alice, in_app_mentions_enabled=False)

        response = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))

        assert response.json() == {"count": 0}


class TestMarkNotification:
    """PATCH /api/v1/notifications/{id} tests."""

    async def test_mark_read(self, async_client: AsyncClient, alice, alice_notifications, auth_headers):
        target = alice_notifications[-1]

        response = await async_client.patch(
            f"/api/v1/notifications/{target.id}",
            json={"is_read": True},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        assert response.json()["is_read"] is True

        count = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
        assert count.json() == {"count": 1}

    async def test_mark_unread(self, async_client: AsyncClient, alice, alice_notifications, auth_headers):
        target = alice_notifications[0]

        response = await async_client.patch(
            f"/api/v1/notifications/{target.id}",
            json={"is_read": False},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        assert response.json()["is_read"] is False

    async def test_other_users_notification_returns_404(
        self, async_client: AsyncClient, bob, alice_notifications, auth_headers
    ):
        response = await async_client.patch(
            f"/api/v1/notifications/{alice_notifications[1].id}",
            json={"is_read": True},
            headers=auth_headers(bob),
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_unknown_notification_returns_404(self, async_client: AsyncClient, alice, auth_headers):
        response = await async_client.patch(
            f"/api/v1/notifications/{uuid4()}",
            json={"is_read": True},
            headers=auth_headers(alice),
        )
        assert response.status_code == 404

    async def test_missing_is_read_returns_400(
        self, async_client: AsyncClient, alice, alice_notifications, auth_headers
    ):
        response = await async_client.patch(
            f"/api/v1/notifications/{alice_notifications[1].id}",
            json={},
            headers=auth_headers(alice),
        )
        assert response.status_code == 400


class TestMarkAllRead:
    """PATCH /api/v1/notifications/mark-all-read tests."""

    async def test_marks_all_and_returns_count(
        self, async_client: AsyncClient, alice, alice_notifications, auth_headers
    ):
        response = await async_client.patch("/api/v1/notifications/mark-all-read", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 2}

        count = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
        assert count.json() == {"count": 0}

    async def test_second_call_marks_nothing(
        self, async_client: AsyncClient, alice, alice_notifications, auth_headers
    ):
        await async_client.patch("/api/v1/notifications/mark-all-read", headers=auth_headers(alice))
        response = await async_client.patch("/api/v1/notifications/mark-all-read", headers=auth_headers(alice))

        assert response.json() == {"success": True, "count": 0}

    async def test_leaves_other_users_untouched(
        self, async_client: AsyncClient, bob, alice, alice_notifications, auth_headers
    ):
        response = await async_client.patch("/api/v1/notifications/mark-all-read", headers=auth_headers(bob))
        assert response.json()["count"] == 0

        count = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
        assert count.json() == {"count": 2}
