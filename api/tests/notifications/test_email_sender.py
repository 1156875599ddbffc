"""
Tests for outbound email: the HTTP sender and the message templates.
"""

import json

import httpx
import pytest

from untitledone.services.email import (
    EmailSender,
    MentionEmailItem,
    OutgoingEmail,
    render_digest_email,
    render_mention_email,
)


def _sender(handler, api_key: str = "re_test_key") -> EmailSender:
    return EmailSender(
        api_key=api_key,
        from_address="UntitledOne <notifications@untitledone.test>",
        api_url="https://email.test/emails",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def item() -> MentionEmailItem:
    return MentionEmailItem(
        project_name="Summer Vibes EP",
        commenter_name="Olivia Owner",
        excerpt="@alice the bridge is too loud",
        link_url="http://localhost:3000/projects/p1?comment=c1&highlight=true",
        context="File comment at 1:23",
    )


class TestEmailSender:
    """EmailSender.send tests."""

    async def test_posts_message_to_api(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "email_1"})

        sent = await _sender(handler).send("alice@example.com", "Hello", "<p>Hi</p>")

        assert sent is True
        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == "https://email.test/emails"
        assert request.headers["Authorization"] == "Bearer re_test_key"
        assert json.loads(request.content) == {
            "from": "UntitledOne <notifications@untitledone.test>",
            "to": ["alice@example.com"],
            "subject": "Hello",
            "html": "<p>Hi</p>",
        }

    async def test_api_error_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        assert await _sender(handler).send("alice@example.com", "Hello", "<p>Hi</p>") is False

    async def test_network_error_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        assert await _sender(handler).send("alice@example.com", "Hello", "<p>Hi</p>") is False

    async def test_missing_api_key_skips_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        assert await _sender(handler, api_key="").send("alice@example.com", "Hello", "<p>Hi</p>") is False
        assert calls == []

    async def test_blank_recipient_skips_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        assert await _sender(handler).send("  ", "Hello", "<p>Hi</p>") is False
        assert calls == []

    async def test_deliver_sends_outgoing_email(self):
        subjects = []

        def handler(request: httpx.Request) -> httpx.Response:
            subjects.append(json.loads(request.content)["subject"])
            return httpx.Response(200)

        email = OutgoingEmail(to="alice@example.com", subject="Queued", html="<p>x</p>")
        assert await _sender(handler).deliver(email) is True
        assert subjects == ["Queued"]


class TestTemplates:
    """render_mention_email and render_digest_email tests."""

    def test_mention_subject(self, item):
        subject, _ = render_mention_email("Alice Adams", item)
        assert subject == "Olivia Owner mentioned you in Summer Vibes EP"

    def test_mention_body_contains_details(self, item):
        _, body = render_mention_email("Alice Adams", item)
        assert "Alice Adams" in body
        assert "File comment at 1:23" in body
        assert "the bridge is too loud" in body
        assert "comment=c1&amp;highlight=true" in body
        assert "/settings/notifications" in body

    def test_user_content_is_escaped(self, item):
        hostile = MentionEmailItem(
            project_name="<b>EP</b>",
            commenter_name="Olivia",
            excerpt='<script>alert("x")</script>',
            link_url=item.link_url,
        )

        _, body = render_mention_email("Alice", hostile)

        assert "<script>" not in body
        assert "&lt;script&gt;" in body
        assert "&lt;b&gt;EP&lt;/b&gt;" in body

    def test_digest_subject_pluralizes(self, item):
        single, _ = render_digest_email("Alice", [item])
        double, _ = render_digest_email("Alice", [item, item])

        assert single == "Daily Mention Digest - 1 new mention"
        assert double == "Daily Mention Digest - 2 new mentions"

    def test_digest_lists_every_mention(self, item):
        _, body = render_digest_email("Alice", [item, item, item])
        assert body.count("View comment") == 3
