"""Delivery policy and content helpers for mention notifications."""

from dataclasses import dataclass
from enum import Enum

from untitledone.config import settings
from untitledone.models.comment import Comment
from untitledone.models.notification import NotificationPreferences


class EmailChannel(str, Enum):
    NONE = "none"
    INSTANT = "instant"
    DIGEST = "digest"


@dataclass(frozen=True)
class DeliveryDecision:
    """How a single mention notification reaches its recipient."""

    email: EmailChannel
    in_app_visible: bool


def decide_delivery(prefs: NotificationPreferences) -> DeliveryDecision:
    """
    Decide the email channel for a mention from the recipient's preferences.

    Disabled email always wins over the frequency setting. Digest mentions
    need no further action: the unread notification row is picked up by
    the daily digest job.
    """
    if not prefs.email_mentions_enabled:
        channel = EmailChannel.NONE
    elif prefs.email_frequency == "instant":
        channel = EmailChannel.INSTANT
    else:
        channel = EmailChannel.DIGEST
    return DeliveryDecision(email=channel, in_app_visible=bool(prefs.in_app_mentions_enabled))


def build_excerpt(body: str | None, length: int | None = None) -> str:
    limit = length if length is not None else settings.mention_excerpt_length
    return (body or "")[:limit]


def format_timestamp(timestamp_ms: int) -> str:
    """Format milliseconds as ``m:ss``."""
    total_seconds = max(timestamp_ms, 0) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def build_context(comment: Comment) -> str | None:
    """Describe where the comment is anchored, e.g. ``File comment at 1:23``."""
    parts = []
    if comment.file_id is not None:
        parts.append("File comment")
    elif comment.version_id is not None:
        parts.append("Version comment")
    if comment.timestamp_ms is not None:
        parts.append(f"at {format_timestamp(comment.timestamp_ms)}")
    return " ".join(parts) or None


def build_comment_link(project_id, comment_id) -> str:
    return f"{settings.site_origin}/projects/{project_id}?comment={comment_id}&highlight=true"


def preferences_url() -> str:
    return f"{settings.site_origin}/settings/notifications"
