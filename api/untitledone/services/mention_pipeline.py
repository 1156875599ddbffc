"""
Mention processing that runs alongside comment create and edit.

Everything here is best-effort: a failure is logged and the comment
operation that triggered it still succeeds.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from untitledone.models.comment import Comment
from untitledone.models.project import Project
from untitledone.models.user import User
from untitledone.services.delivery import (
    EmailChannel,
    build_comment_link,
    build_context,
    build_excerpt,
    decide_delivery,
)
from untitledone.services.email import MentionEmailItem, OutgoingEmail, render_mention_email
from untitledone.services.membership import validate_mentions
from untitledone.services.mentions import get_new_mentions, parse_mentions
from untitledone.services.notifications import (
    create_mention_notifications,
    get_preferences_map,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_best_effort(
    label: str,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    default: T,
    **kwargs: Any,
) -> T:
    """Await ``func`` and return ``default`` instead of raising."""
    try:
        return await func(*args, **kwargs)
    except Exception:
        logger.exception("Best-effort task %s failed", label)
        return default


async def process_comment_mentions(
    db: AsyncSession,
    comment: Comment,
    author: User,
    previous_text: str | None = None,
) -> list[OutgoingEmail]:
    """
    Notify users mentioned in a comment.

    On create (``previous_text`` is None) every mention counts; on edit only
    mentions absent from the previous body do. Edits of resolved comments
    notify nobody. Returns the instant emails to send once the response is out.
    """
    if previous_text is None:
        candidates = parse_mentions(comment.body)
    else:
        if comment.resolved:
            return []
        candidates = get_new_mentions(comment.body, previous_text)

    if not candidates:
        return []

    # Work in a savepoint so a failed statement cannot poison the comment's transaction.
    async with db.begin_nested():
        valid_users = await validate_mentions(db, candidates, comment.project_id)
        if not valid_users:
            logger.debug("No valid mentions among %s on comment %s", candidates, comment.id)
            return []

        notifications = await create_mention_notifications(
            db,
            comment_id=comment.id,
            mentioned_user_ids=[user["id"] for user in valid_users],
            author_id=author.id,
            project_id=comment.project_id,
        )
        if not notifications:
            return []

        return await _instant_emails(db, comment, author, [n.user_id for n in notifications])


async def _instant_emails(
    db: AsyncSession,
    comment: Comment,
    author: User,
    recipient_ids: list,
) -> list[OutgoingEmail]:
    prefs = await get_preferences_map(db, recipient_ids)
    instant_ids = [
        user_id for user_id in recipient_ids if decide_delivery(prefs[user_id]).email is EmailChannel.INSTANT
    ]
    if not instant_ids:
        return []

    project_result = await db.execute(select(Project.name).where(Project.id == comment.project_id))
    project_name = project_result.scalar_one_or_none() or "a project"

    users_result = await db.execute(select(User).where(User.id.in_(instant_ids)))
    recipients = [user for user in users_result.scalars().all() if user.email]

    item = MentionEmailItem(
        project_name=project_name,
        commenter_name=author.name,
        excerpt=build_excerpt(comment.body),
        link_url=build_comment_link(comment.project_id, comment.id),
        context=build_context(comment),
    )

    emails = []
    for recipient in recipients:
        subject, html_body = render_mention_email(recipient.name, item)
        emails.append(OutgoingEmail(to=recipient.email, subject=subject, html=html_body))
    return emails
