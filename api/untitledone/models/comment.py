"""Project comment and comment mention models."""

import uuid

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import relationship

from untitledone.database import Base, utcnow


class Comment(Base):
    """Threaded comment on a project, optionally anchored to a file or version."""

    __tablename__ = "project_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Uuid, ForeignKey("project_comments.id", ondelete="CASCADE"))
    # Files and versions live in external storage; only their ids are kept here.
    file_id = Column(Uuid)
    version_id = Column(Uuid)
    timestamp_ms = Column(Integer)
    body = Column(Text, nullable=False)
    resolved = Column(Boolean, nullable=False, default=False, server_default=false())
    edited = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("length(body) <= 4000", name="ck_project_comment_body_length"),
        Index("idx_project_comments_project", project_id, created_at.desc()),
    )

    project = relationship("Project")
    author = relationship("User", foreign_keys=[author_id])
    mentions = relationship(
        "CommentMention",
        back_populates="comment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class CommentMention(Base):
    """Directed edge from a comment to a user it mentions."""

    __tablename__ = "comment_mentions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    comment_id = Column(
        Uuid,
        ForeignKey("project_comments.id", ondelete="CASCADE"),
        nullable=False,
    )
    mentioned_user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("comment_id", "mentioned_user_id", name="uq_comment_mentions_comment_user"),
        Index("idx_comment_mentions_user", mentioned_user_id),
    )

    comment = relationship("Comment", back_populates="mentions")
    mentioned_user = relationship("User", foreign_keys=[mentioned_user_id])
