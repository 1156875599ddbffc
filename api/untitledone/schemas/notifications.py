"""Notification-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel


class NotificationComment(BaseModel):
    """The comment a notification points at."""

    id: str
    body: str
    author_id: str
    project_id: str
    file_id: str | None
    version_id: str | None
    timestamp_ms: int | None


class NotificationProject(BaseModel):
    id: str
    name: str


class NotificationItem(BaseModel):
    """Single notification item."""

    id: str
    user_id: str
    type: str
    comment_id: str | None
    project_id: str | None
    is_read: bool
    created_at: str
    updated_at: str
    comment: NotificationComment | None
    project: NotificationProject | None


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadRequest(BaseModel):
    """Request to change the read state of a notification."""

    is_read: bool


class MarkAllReadResponse(BaseModel):
    """Response for marking all notifications as read."""

    success: bool
    count: int


class NotificationPreferencesPayload(BaseModel):
    """Mention notification preferences, used for both reads and writes."""

    email_mentions_enabled: bool
    in_app_mentions_enabled: bool
    email_frequency: Literal["instant", "daily"]
