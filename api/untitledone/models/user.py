"""User model mirrored from the hosted auth backend."""

import uuid

from sqlalchemy import (
    TIMESTAMP,
    Column,
    Index,
    String,
    Text,
    Uuid,
    func,
)

from untitledone.database import Base, utcnow


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(64), unique=True, nullable=False)
    email = Column(String, unique=True)
    display_name = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (Index("idx_users_username_lower", func.lower(username), unique=True),)

    @property
    def name(self) -> str:
        """Display name, falling back to the username."""
        return self.display_name or self.username
