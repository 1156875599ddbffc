"""Mention notification persistence, read state and preferences."""

import logging
from datetime import datetime
from typing import Iterable, Literal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from untitledone.database import as_utc
from untitledone.errors import not_found
from untitledone.models.comment import CommentMention
from untitledone.models.notification import Notification, NotificationPreferences

logger = logging.getLogger(__name__)

NotificationFilter = Literal["unread", "all"]


async def _already_mentioned(db: AsyncSession, comment_id: UUID, user_ids: list[UUID]) -> set[UUID]:
    result = await db.execute(
        select(CommentMention.mentioned_user_id).where(
            CommentMention.comment_id == comment_id,
            CommentMention.mentioned_user_id.in_(user_ids),
        )
    )
    return set(result.scalars().all())


async def create_mention_notifications(
    db: AsyncSession,
    comment_id: UUID,
    mentioned_user_ids: Iterable[UUID],
    author_id: UUID,
    project_id: UUID,
) -> list[Notification]:
    """
    Record mentions of users in a comment and notify each of them once.

    Each (comment, user) pair is notified at most once, even across edits and
    concurrent writers. Database errors are logged and never raised, so the
    comment operation that triggered this cannot fail because of it.
    """
    recipients = [user_id for user_id in dict.fromkeys(mentioned_user_ids) if user_id != author_id]
    if not recipients:
        return []

    try:
        already_notified = await _already_mentioned(db, comment_id, recipients)
    except SQLAlchemyError:
        logger.exception("Failed to load existing mentions for comment %s", comment_id)
        return []

    pending = [user_id for user_id in recipients if user_id not in already_notified]
    to_notify: list[UUID] = []

    for user_id in pending:
        try:
            async with db.begin_nested():
                db.add(CommentMention(comment_id=comment_id, mentioned_user_id=user_id))
        except IntegrityError:
            # Another writer recorded this mention first and owns its notification.
            logger.info("Mention of %s on comment %s already recorded", user_id, comment_id)
            continue
        except SQLAlchemyError:
            logger.exception("Failed to record mention of %s on comment %s", user_id, comment_id)
        to_notify.append(user_id)

    if not to_notify:
        return []

    notifications = [
        Notification(
            user_id=user_id,
            type="mention",
            comment_id=comment_id,
            project_id=project_id,
            is_read=False,
        )
        for user_id in to_notify
    ]
    try:
        async with db.begin_nested():
            db.add_all(notifications)
    except SQLAlchemyError:
        logger.exception("Failed to create mention notifications for comment %s", comment_id)
        return []

    logger.info("Created %d mention notification(s) for comment %s", len(notifications), comment_id)
    return notifications


# --- Preferences ---


async def get_preferences(db: AsyncSession, user_id: UUID) -> NotificationPreferences:
    """Stored preferences, or transient defaults when the user has none."""
    result = await db.execute(
        select(NotificationPreferences).where(NotificationPreferences.user_id == user_id)
    )
    prefs = result.scalar_one_or_none()
    if prefs is None:
        return NotificationPreferences.defaults(user_id)
    return prefs


async def get_preferences_map(
    db: AsyncSession,
    user_ids: Iterable[UUID],
) -> dict[UUID, NotificationPreferences]:
    """Effective preferences for several users in one query."""
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(NotificationPreferences).where(NotificationPreferences.user_id.in_(ids))
    )
    stored = {prefs.user_id: prefs for prefs in result.scalars().all()}
    return {user_id: stored.get(user_id) or NotificationPreferences.defaults(user_id) for user_id in ids}


async def upsert_preferences(
    db: AsyncSession,
    user_id: UUID,
    email_mentions_enabled: bool,
    in_app_mentions_enabled: bool,
    email_frequency: str,
) -> NotificationPreferences:
    """Create or replace a user's preferences row."""
    values = {
        "email_mentions_enabled": email_mentions_enabled,
        "in_app_mentions_enabled": in_app_mentions_enabled,
        "email_frequency": email_frequency,
    }

    result = await db.execute(
        select(NotificationPreferences).where(NotificationPreferences.user_id == user_id)
    )
    prefs = result.scalar_one_or_none()

    if prefs is None:
        try:
            async with db.begin_nested():
                prefs = NotificationPreferences(user_id=user_id, **values)
                db.add(prefs)
            return prefs
        except IntegrityError:
            # Created concurrently; fall through and update that row.
            result = await db.execute(
                select(NotificationPreferences).where(NotificationPreferences.user_id == user_id)
            )
            prefs = result.scalar_one()

    for key, value in values.items():
        setattr(prefs, key, value)
    await db.flush()
    return prefs


# --- Listing and read state ---


def _visible_to(user_id: UUID, prefs: NotificationPreferences):
    """WHERE clauses for the notifications a user sees in-app."""
    clauses = [Notification.user_id == user_id]
    if not prefs.in_app_mentions_enabled:
        clauses.append(Notification.type != "mention")
    return clauses


async def list_notifications(
    db: AsyncSession,
    user_id: UUID,
    filter: NotificationFilter = "all",
    limit: int = 20,
    cursor: datetime | None = None,
) -> list[Notification]:
    """
    Newest-first notifications for a user.

    ``cursor`` is the ``created_at`` of the last item of the previous page.
    Mention notifications are hidden while in-app mentions are disabled.
    """
    prefs = await get_preferences(db, user_id)
    query = (
        select(Notification)
        .options(
            selectinload(Notification.comment),
            selectinload(Notification.project),
        )
        .where(*_visible_to(user_id, prefs))
    )

    if filter == "unread":
        query = query.where(Notification.is_read.is_(False))

    if cursor is not None:
        query = query.where(Notification.created_at < as_utc(cursor))

    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def unread_count(db: AsyncSession, user_id: UUID) -> int:
    prefs = await get_preferences(db, user_id)
    result = await db.execute(
        select(func.count(Notification.id)).where(
            *_visible_to(user_id, prefs),
            Notification.is_read.is_(False),
        )
    )
    return result.scalar() or 0


async def mark_read(
    db: AsyncSession,
    user_id: UUID,
    notification_id: UUID,
    is_read: bool = True,
) -> Notification:
    """Set the read state of one of the user's notifications."""
    result = await db.execute(
        select(Notification)
        .options(
            selectinload(Notification.comment),
            selectinload(Notification.project),
        )
        .where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()

    if notification is None:
        raise not_found(f"Notification '{notification_id}' not found")

    if notification.is_read != is_read:
        notification.is_read = is_read
        await db.flush()

    return notification


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark every unread notification of the user as read; return how many changed."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
        .returning(Notification.id)
    )
    marked_ids = list(result.scalars().all())
    return len(marked_ids)
