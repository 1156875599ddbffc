"""Daily digest of unread mention notifications."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from untitledone.config import settings
from untitledone.database import utcnow
from untitledone.models.comment import Comment
from untitledone.models.notification import Notification, NotificationPreferences
from untitledone.models.user import User
from untitledone.services.delivery import build_comment_link, build_context, build_excerpt
from untitledone.services.email import EmailSender, MentionEmailItem, render_digest_email

logger = logging.getLogger(__name__)


@dataclass
class UserDigest:
    user_id: UUID
    email: str | None
    name: str
    items: list[MentionEmailItem] = field(default_factory=list)


@dataclass
class DigestRunResult:
    users: int = 0
    sent: int = 0
    failed: int = 0


def _daily_digest_filter():
    """Users whose effective preferences are email enabled + daily; no row means defaults."""
    return or_(
        NotificationPreferences.user_id.is_(None),
        and_(
            NotificationPreferences.email_mentions_enabled.is_(True),
            NotificationPreferences.email_frequency == "daily",
        ),
    )


async def collect_digests(
    db: AsyncSession,
    now: datetime | None = None,
    interval: timedelta | None = None,
) -> list[UserDigest]:
    """
    Group unread mention notifications from ``[now - interval, now)`` per recipient.

    Users without a preferences row are treated as having the defaults.
    """
    now = now or utcnow()
    interval = interval or timedelta(hours=settings.digest_interval_hours)
    since = now - interval

    result = await db.execute(
        select(Notification)
        .join(User, User.id == Notification.user_id)
        .outerjoin(NotificationPreferences, NotificationPreferences.user_id == Notification.user_id)
        .options(
            selectinload(Notification.user),
            selectinload(Notification.project),
            selectinload(Notification.comment).selectinload(Comment.author),
        )
        .where(
            Notification.type == "mention",
            Notification.is_read.is_(False),
            Notification.created_at >= since,
            Notification.created_at < now,
            _daily_digest_filter(),
        )
        .order_by(Notification.user_id, Notification.created_at)
    )

    digests: dict[UUID, UserDigest] = {}
    for notification in result.scalars().all():
        comment = notification.comment
        if comment is None:
            continue
        user = notification.user
        if notification.user_id not in digests:
            digests[notification.user_id] = UserDigest(
                user_id=user.id,
                email=user.email,
                name=user.name,
            )
        digests[notification.user_id].items.append(
            MentionEmailItem(
                project_name=notification.project.name if notification.project else "a project",
                commenter_name=comment.author.name if comment.author else "Someone",
                excerpt=build_excerpt(comment.body),
                link_url=build_comment_link(comment.project_id, comment.id),
                context=build_context(comment),
            )
        )

    return list(digests.values())


async def send_daily_digests(
    db: AsyncSession,
    sender: EmailSender,
    now: datetime | None = None,
    interval: timedelta | None = None,
) -> DigestRunResult:
    """Send one digest email per user; a failure for one user does not stop the rest."""
    digests = await collect_digests(db, now=now, interval=interval)
    run = DigestRunResult(users=len(digests))

    for digest in digests:
        if not digest.email:
            logger.info("User %s has no email address; skipping digest", digest.user_id)
            run.failed += 1
            continue
        subject, html_body = render_digest_email(digest.name, digest.items)
        try:
            sent = await sender.send(digest.email, subject, html_body)
        except Exception:
            logger.exception("Digest for user %s failed", digest.user_id)
            sent = False
        if sent:
            run.sent += 1
        else:
            run.failed += 1

    logger.info("Digest run complete: %d users, %d sent, %d failed", run.users, run.sent, run.failed)
    return run
