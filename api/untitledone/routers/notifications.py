"""Notifications router: mention inbox, read state and preferences."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from untitledone.auth.dependencies import get_current_user
from untitledone.database import as_utc, get_db
from untitledone.models.notification import Notification, NotificationPreferences
from untitledone.models.user import User
from untitledone.schemas.notifications import (
    MarkAllReadResponse,
    MarkReadRequest,
    NotificationComment,
    NotificationItem,
    NotificationPreferencesPayload,
    NotificationProject,
    UnreadCountResponse,
)
from untitledone.services import notifications as notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


def _notification_item(n: Notification) -> NotificationItem:
    comment = None
    if n.comment is not None:
        comment = NotificationComment(
            id=str(n.comment.id),
            body=n.comment.body,
            author_id=str(n.comment.author_id),
            project_id=str(n.comment.project_id),
            file_id=str(n.comment.file_id) if n.comment.file_id else None,
            version_id=str(n.comment.version_id) if n.comment.version_id else None,
            timestamp_ms=n.comment.timestamp_ms,
        )
    project = None
    if n.project is not None:
        project = NotificationProject(id=str(n.project.id), name=n.project.name)

    return NotificationItem(
        id=str(n.id),
        user_id=str(n.user_id),
        type=n.type,
        comment_id=str(n.comment_id) if n.comment_id else None,
        project_id=str(n.project_id) if n.project_id else None,
        is_read=n.is_read,
        created_at=as_utc(n.created_at).isoformat(),
        updated_at=as_utc(n.updated_at).isoformat(),
        comment=comment,
        project=project,
    )


def _preferences_payload(prefs: NotificationPreferences) -> NotificationPreferencesPayload:
    return NotificationPreferencesPayload(
        email_mentions_enabled=prefs.email_mentions_enabled,
        in_app_mentions_enabled=prefs.in_app_mentions_enabled,
        email_frequency=prefs.email_frequency,
    )


# --- List Notifications ---


@router.get(
    "",
    response_model=list[NotificationItem],
    status_code=status.HTTP_200_OK,
)
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    filter: Literal["unread", "all"] = Query(default="all", description="Read state filter"),
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
    cursor: datetime | None = Query(default=None, description="created_at of the last item seen"),
) -> list[NotificationItem]:
    """
    List notifications with cursor-based pagination.

    Returns notifications ordered by created_at descending. Pass the
    ``created_at`` of the last item as ``cursor`` to get the next page.
    """
    notifications = await notification_service.list_notifications(
        db,
        user.id,
        filter=filter,
        limit=limit,
        cursor=cursor,
    )
    return [_notification_item(n) for n in notifications]


# --- Unread Count ---


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    status_code=status.HTTP_200_OK,
)
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UnreadCountResponse:
    """Count unread notifications for the badge."""
    count = await notification_service.unread_count(db, user.id)
    return UnreadCountResponse(count=count)


# --- Mark All Notifications as Read ---


@router.patch(
    "/mark-all-read",
    response_model=MarkAllReadResponse,
    status_code=status.HTTP_200_OK,
)
async def mark_all_notifications_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MarkAllReadResponse:
    """Mark all unread notifications as read."""
    count = await notification_service.mark_all_read(db, user.id)
    return MarkAllReadResponse(success=True, count=count)


# --- Preferences ---


@router.get(
    "/preferences",
    response_model=NotificationPreferencesPayload,
    status_code=status.HTTP_200_OK,
)
async def get_notification_preferences(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationPreferencesPayload:
    """Return the user's preferences, or the defaults if none were saved."""
    prefs = await notification_service.get_preferences(db, user.id)
    return _preferences_payload(prefs)


@router.put(
    "/preferences",
    response_model=NotificationPreferencesPayload,
    status_code=status.HTTP_200_OK,
)
async def update_notification_preferences(
    data: NotificationPreferencesPayload,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationPreferencesPayload:
    """Save the user's preferences, creating the row on first write."""
    prefs = await notification_service.upsert_preferences(
        db,
        user.id,
        email_mentions_enabled=data.email_mentions_enabled,
        in_app_mentions_enabled=data.in_app_mentions_enabled,
        email_frequency=data.email_frequency,
    )
    return _preferences_payload(prefs)


# --- Mark Notification Read/Unread ---


@router.patch(
    "/{notification_id}",
    response_model=NotificationItem,
    status_code=status.HTTP_200_OK,
)
async def update_notification(
    notification_id: UUID,
    data: MarkReadRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationItem:
    """Mark a single notification as read or unread."""
    notification = await notification_service.mark_read(
        db,
        user.id,
        notification_id,
        is_read=data.is_read,
    )
    return _notification_item(notification)
