"""Temporary project share link model."""

import uuid
from datetime import datetime

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import relationship

from untitledone.database import Base, as_utc, utcnow


class ShareLink(Base):
    """
    Single-use capability token granting viewer access to a project.

    Status is derived from ``revoked``, ``used_by`` and ``expires_at``;
    see :meth:`status`.
    """

    __tablename__ = "project_share_links"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    token = Column(String(128), unique=True, nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    used_by = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"))
    used_at = Column(TIMESTAMP(timezone=True))
    revoked = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("idx_share_links_project_active", project_id, expires_at),
    )

    project = relationship("Project")
    creator = relationship("User", foreign_keys=[created_by])

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= as_utc(self.expires_at)

    def status(self, now: datetime | None = None) -> str:
        """Return ``revoked``, ``used``, ``expired`` or ``active``, in that precedence."""
        if self.revoked:
            return "revoked"
        if self.used_by is not None:
            return "used"
        if self.is_expired(now):
            return "expired"
        return "active"
