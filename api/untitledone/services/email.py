"""
Outbound email for mention notifications.

Emails are posted to a Resend-compatible HTTP API. Sending is best-effort:
failures are logged and reported as ``False``, never raised or retried.
"""

import html
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from untitledone.config import settings
from untitledone.services.delivery import preferences_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MentionEmailItem:
    """One mention as shown in an instant email or a digest."""

    project_name: str
    commenter_name: str
    excerpt: str
    link_url: str
    context: str | None = None


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str


class EmailSender:
    """Thin async client for the email HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        api_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        """Send one email. Returns True if the API accepted it."""
        to = (to or "").strip()
        if not to:
            logger.debug("No recipient address; skipping email %r", subject)
            return False
        if not self.api_key:
            logger.warning("EMAIL_API_KEY not configured; skipping email to %s", to)
            return False

        payload: dict[str, Any] = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Email API rejected message to %s: %s %s",
                to,
                exc.response.status_code,
                exc.response.text[:200],
            )
            return False
        except httpx.HTTPError as exc:
            logger.error("Failed to reach email API for %s: %s", to, exc)
            return False

        logger.info("Email sent to %s: %s", to, subject)
        return True

    async def deliver(self, email: OutgoingEmail) -> bool:
        return await self.send(email.to, email.subject, email.html)


def get_email_sender() -> EmailSender:
    """Dependency returning a sender configured from settings."""
    return EmailSender(
        api_key=settings.email_api_key,
        from_address=settings.email_from,
        api_url=settings.email_api_url,
        timeout=settings.email_timeout_seconds,
    )


# --- Templates ---


def _mention_block(item: MentionEmailItem) -> str:
    context = (
        f'<p style="margin: 0 0 8px; color: #666; font-size: 13px;"><em>{html.escape(item.context)}</em></p>'
        if item.context
        else ""
    )
    return (
        '<div style="margin-bottom: 24px; padding-bottom: 24px; border-bottom: 1px solid #e5e7eb;">'
        f'<p style="margin: 0 0 8px; font-size: 15px;"><strong>{html.escape(item.commenter_name)}</strong>'
        f" mentioned you in <strong>{html.escape(item.project_name)}</strong></p>"
        f"{context}"
        '<blockquote style="margin: 0 0 12px; padding: 12px 16px; background: #f4f4f5; '
        'border-left: 4px solid #3b82f6;">'
        f'<p style="margin: 0; font-style: italic;">"{html.escape(item.excerpt)}"</p>'
        "</blockquote>"
        f'<a href="{html.escape(item.link_url, quote=True)}" style="color: #3b82f6;">View comment</a>'
        "</div>"
    )


def _page(title: str, body: str, footer: str) -> str:
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8"></head>'
        '<body style="background-color: #f6f9fc; font-family: sans-serif;">'
        '<div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; padding: 40px;">'
        f'<h1 style="font-size: 24px; margin: 0 0 24px;">{html.escape(title)}</h1>'
        f"{body}"
        '<hr style="border: none; border-top: 1px solid #e5e7eb; margin: 32px 0;">'
        f'<p style="color: #666; font-size: 12px;">{footer} '
        f'<a href="{html.escape(preferences_url(), quote=True)}">Manage your notification preferences</a></p>'
        "</div></body></html>"
    )


def render_mention_email(recipient_name: str, item: MentionEmailItem) -> tuple[str, str]:
    """Return ``(subject, html)`` for an instant mention email."""
    subject = f"{item.commenter_name} mentioned you in {item.project_name}"
    body = f"<p>Hi <strong>{html.escape(recipient_name)}</strong>,</p>{_mention_block(item)}"
    footer = "You received this email because instant mention emails are enabled."
    return subject, _page("You were mentioned", body, footer)


def render_digest_email(recipient_name: str, items: list[MentionEmailItem]) -> tuple[str, str]:
    """Return ``(subject, html)`` for a daily digest of mentions."""
    count = len(items)
    plural = "" if count == 1 else "s"
    subject = f"Daily Mention Digest - {count} new mention{plural}"
    body = (
        f"<p>Hi <strong>{html.escape(recipient_name)}</strong>,</p>"
        f"<p>You have <strong>{count}</strong> new mention{plural} from the last day:</p>"
        + "".join(_mention_block(item) for item in items)
    )
    footer = "You received this email because you have daily digest enabled."
    return subject, _page("Daily Mention Digest", body, footer)
