"""
Tests for project comment endpoints:
- GET /api/v1/projects/{project_id}/comments
- POST /api/v1/projects/{project_id}/comments
- PUT /api/v1/projects/{project_id}/comments/{comment_id}
- DELETE /api/v1/projects/{project_id}/comments/{comment_id}
"""

from datetime import timedelta
from uuid import UUID, uuid4

from httpx import AsyncClient
from sqlalchemy import select

from factories import add_member, create_comment, set_preferences
from untitledone.database import utcnow
from untitledone.models.comment import Comment
from untitledone.models.notification import Notification


def _url(project_id, comment_id=None) -> str:
    base = f"/api/v1/projects/{project_id}/comments"
    return f"{base}/{comment_id}" if comment_id else base


async def _notified(db, user) -> list[Notification]:
    result = await db.execute(select(Notification).where(Notification.user_id == user.id))
    return list(result.scalars().all())


class TestCreateComment:
    """POST /api/v1/projects/{project_id}/comments tests."""

    async def test_create_returns_201(self, async_client: AsyncClient, owner, project, auth_headers):
        response = await async_client.post(
            _url(project.id),
            json={"body": "Love the intro", "timestamp_ms": 12000},
            headers=auth_headers(owner),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["body"] == "Love the intro"
        assert data["author"] == "Olivia Owner"
        assert data["timestamp_ms"] == 12000
        assert data["resolved"] is False
        assert data["edited"] is False

    async def test_body_is_sanitized(self, async_client: AsyncClient, owner, project, auth_headers):
        response = await async_client.post(
            _url(project.id),
            json={"body": "  tighten\x00 the\x07 kick  "},
            headers=auth_headers(owner),
        )

        assert response.json()["body"] == "tighten the kick"

    async def test_empty_body_returns_400(self, async_client: AsyncClient, owner, project, auth_headers):
        response = await async_client.post(_url(project.id), json={"body": "   "}, headers=auth_headers(owner))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_body_too_long_returns_400(self, async_client: AsyncClient, owner, project, auth_headers):
        response = await async_client.post(
            _url(project.id),
            json={"body": "a" * 4001},
            headers=auth_headers(owner),
        )
        assert response.status_code == 400

    async def test_file_and_version_together_returns_400(
        self, async_client: AsyncClient, owner, project, auth_headers
    ):
        response = await async_client.post(
            _url(project.id),
            json={"body": "both", "file_id": str(uuid4()), "version_id": str(uuid4())},
            headers=auth_headers(owner),
        )
        assert response.status_code == 400

    async def test_negative_timestamp_returns_400(self, async_client: AsyncClient, owner, project, auth_headers):
        response = await async_client.post(
            _url(project.id),
            json={"body": "early", "timestamp_ms": -1},
            headers=auth_headers(owner),
        )
        assert response.status_code == 400

    async def test_reply_to_unknown_parent_returns_404(
        self, async_client: AsyncClient, owner, project, auth_headers
    ):
        response = await async_client.post(
            _url(project.id),
            json={"body": "reply", "parent_id": str(uuid4())},
            headers=auth_headers(owner),
        )
        assert response.status_code == 404

    async def test_non_member_gets_403(self, async_client: AsyncClient, outsider, project, auth_headers):
        response = await async_client.post(_url(project.id), json={"body": "hi"}, headers=auth_headers(outsider))
        assert response.status_code == 403

    async def test_mentions_notify_members_only(
        self, async_client: AsyncClient, db_session, owner, alice, bob, project_with_alice, auth_headers
    ):
        response = await async_client.post(
            _url(project_with_alice.id),
            json={"body": "Hey @alice can you check this @bob?"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 201
        assert len(await _notified(db_session, alice)) == 1
        assert await _notified(db_session, bob) == []

    async def test_instant_email_is_sent_after_response(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers, email_sender
    ):
        await set_preferences(db_session, alice, email_frequency="instant")

        await async_client.post(
            _url(project_with_alice.id),
            json={"body": "@alice new bounce is up"},
            headers=auth_headers(owner),
        )

        assert len(email_sender.outbox) == 1
        assert email_sender.outbox[0]["to"] == "alice@example.com"
        assert email_sender.outbox[0]["subject"] == "Olivia Owner mentioned you in Summer Vibes EP"

    async def test_daily_preference_sends_no_email(
        self, async_client: AsyncClient, owner, alice, project_with_alice, auth_headers, email_sender
    ):
        await async_client.post(
            _url(project_with_alice.id),
            json={"body": "@alice new bounce is up"},
            headers=auth_headers(owner),
        )

        assert email_sender.outbox == []

    async def test_mention_failure_does_not_fail_comment(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers, monkeypatch
    ):
        async def broken_validate(*args, **kwargs):
            raise RuntimeError("membership lookup failed")

        monkeypatch.setattr("untitledone.services.mention_pipeline.validate_mentions", broken_validate)

        response = await async_client.post(
            _url(project_with_alice.id),
            json={"body": "@alice still saved"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 201
        comment = await db_session.get(Comment, UUID(response.json()["id"]))
        assert comment is not None
        assert await _notified(db_session, alice) == []


class TestUpdateComment:
    """PUT /api/v1/projects/{project_id}/comments/{comment_id} tests."""

    async def test_author_can_edit(self, async_client: AsyncClient, db_session, alice, project_with_alice, auth_headers):
        comment = await create_comment(db_session, project_with_alice, alice, body="first take")

        response = await async_client.put(
            _url(project_with_alice.id, comment.id),
            json={"body": "second take"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["body"] == "second take"
        assert data["edited"] is True

    async def test_owner_cannot_edit_others_body(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers
    ):
        comment = await create_comment(db_session, project_with_alice, alice)

        response = await async_client.put(
            _url(project_with_alice.id, comment.id),
            json={"body": "rewritten"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 403

    async def test_owner_can_resolve(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers
    ):
        comment = await create_comment(db_session, project_with_alice, alice)

        response = await async_client.put(
            _url(project_with_alice.id, comment.id),
            json={"resolved": True},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["resolved"] is True
        assert response.json()["edited"] is False

    async def test_other_member_cannot_resolve(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers
    ):
        comment = await create_comment(db_session, project_with_alice, owner)

        response = await async_client.put(
            _url(project_with_alice.id, comment.id),
            json={"resolved": True},
            headers=auth_headers(alice),
        )

        assert response.status_code == 403

    async def test_empty_update_returns_400(
        self, async_client: AsyncClient, db_session, alice, project_with_alice, auth_headers
    ):
        comment = await create_comment(db_session, project_with_alice, alice)

        response = await async_client.put(_url(project_with_alice.id, comment.id), json={}, headers=auth_headers(alice))

        assert response.status_code == 400

    async def test_edit_notifies_only_new_mentions(
        self, async_client: AsyncClient, db_session, owner, alice, bob, project_with_alice, auth_headers
    ):
        await add_member(db_session, project_with_alice, bob)
        created = await async_client.post(
            _url(project_with_alice.id),
            json={"body": "@alice have a listen"},
            headers=auth_headers(owner),
        )
        comment_id = created.json()["id"]

        await async_client.put(
            _url(project_with_alice.id, comment_id),
            json={"body": "@alice have a listen, @bob too"},
            headers=auth_headers(owner),
        )

        assert len(await _notified(db_session, alice)) == 1
        assert len(await _notified(db_session, bob)) == 1

    async def test_unknown_comment_returns_404(self, async_client: AsyncClient, alice, project_with_alice, auth_headers):
        response = await async_client.put(
            _url(project_with_alice.id, uuid4()),
            json={"body": "x"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 404


class TestDeleteComment:
    """DELETE /api/v1/projects/{project_id}/comments/{comment_id} tests."""

    async def test_author_can_delete(self, async_client: AsyncClient, db_session, alice, project_with_alice, auth_headers):
        comment = await create_comment(db_session, project_with_alice, alice)
        comment_id = comment.id

        response = await async_client.delete(_url(project_with_alice.id, comment_id), headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json() == {"success": True}
        result = await db_session.execute(select(Comment.id).where(Comment.id == comment_id))
        assert result.first() is None

    async def test_owner_can_delete(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers
    ):
        comment = await create_comment(db_session, project_with_alice, alice)

        response = await async_client.delete(_url(project_with_alice.id, comment.id), headers=auth_headers(owner))

        assert response.status_code == 200

    async def test_other_member_cannot_delete(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers
    ):
        comment = await create_comment(db_session, project_with_alice, owner)

        response = await async_client.delete(_url(project_with_alice.id, comment.id), headers=auth_headers(alice))

        assert response.status_code == 403


class TestListComments:
    """GET /api/v1/projects/{project_id}/comments tests."""

    async def test_lists_newest_first(
        self, async_client: AsyncClient, db_session, owner, alice, project_with_alice, auth_headers
    ):
        now = utcnow()
        older = await create_comment(db_session, project_with_alice, owner, body="older", created_at=now - timedelta(minutes=5))
        newer = await create_comment(db_session, project_with_alice, alice, body="newer", created_at=now)

        response = await async_client.get(_url(project_with_alice.id), headers=auth_headers(alice))

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [str(newer.id), str(older.id)]

    async def test_filters_by_file(self, async_client: AsyncClient, db_session, owner, project, auth_headers):
        file_id = uuid4()
        on_file = await create_comment(db_session, project, owner, body="on file", file_id=file_id)
        await create_comment(db_session, project, owner, body="project level")

        response = await async_client.get(
            _url(project.id),
            params={"file_id": str(file_id)},
            headers=auth_headers(owner),
        )

        assert [item["id"] for item in response.json()] == [str(on_file.id)]

    async def test_non_member_gets_403(self, async_client: AsyncClient, outsider, project, auth_headers):
        response = await async_client.get(_url(project.id), headers=auth_headers(outsider))
        assert response.status_code == 403
