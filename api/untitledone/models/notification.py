"""Notification and notification preference models."""

import uuid

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Uuid,
    false,
    func,
    true,
)
from sqlalchemy.orm import relationship

from untitledone.database import Base, utcnow

NOTIFICATION_TYPES = ("mention", "comment", "invitation")
EMAIL_FREQUENCIES = ("instant", "daily")

DEFAULT_PREFERENCES = {
    "email_mentions_enabled": True,
    "in_app_mentions_enabled": True,
    "email_frequency": "daily",
}


class Notification(Base):
    """User notification model."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type = Column(String(32), nullable=False)
    comment_id = Column(Uuid, ForeignKey("project_comments.id", ondelete="CASCADE"))
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"))
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('mention', 'comment', 'invitation')",
            name="ck_notifications_type",
        ),
        Index("idx_notifications_user", user_id, created_at.desc()),
        Index(
            "idx_notifications_unread",
            user_id,
            created_at.desc(),
            postgresql_where=(is_read.is_(False)),
        ),
    )

    user = relationship("User", foreign_keys=[user_id])
    comment = relationship("Comment", foreign_keys=[comment_id])
    project = relationship("Project", foreign_keys=[project_id])


class NotificationPreferences(Base):
    """Per-user mention notification settings. Absent row means defaults."""

    __tablename__ = "notification_preferences"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    email_mentions_enabled = Column(Boolean, nullable=False, default=True, server_default=true())
    in_app_mentions_enabled = Column(Boolean, nullable=False, default=True, server_default=true())
    email_frequency = Column(String(16), nullable=False, default="daily", server_default="daily")
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "email_frequency IN ('instant', 'daily')",
            name="ck_notification_preferences_frequency",
        ),
    )

    user = relationship("User", foreign_keys=[user_id])

    @classmethod
    def defaults(cls, user_id: uuid.UUID) -> "NotificationPreferences":
        """Transient preferences carrying the defaults; never added to a session."""
        return cls(user_id=user_id, **DEFAULT_PREFERENCES)
