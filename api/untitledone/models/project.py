"""Project and project membership models."""

import uuid

from sqlalchemy import (
    TIMESTAMP,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from untitledone.database import Base, utcnow


class Project(Base):
    """Music project owned by a single user."""

    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
    )


class ProjectMember(Base):
    """Non-owner membership of a project."""

    __tablename__ = "project_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(32), nullable=False, default="viewer", server_default="viewer")
    added_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))
    joined_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
        Index("idx_project_members_user", user_id),
    )

    project = relationship("Project", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])
