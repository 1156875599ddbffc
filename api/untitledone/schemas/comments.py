"""Comment-related Pydantic schemas."""

import re
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_COMMENT_LENGTH = 4000

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_comment(value: str) -> str:
    """Trim the body and strip control characters."""
    return _CONTROL_CHARS.sub("", value.strip())


def _validate_body(v: str) -> str:
    cleaned = sanitize_comment(v)
    if not cleaned:
        raise ValueError("Comment is required")
    if len(cleaned) > MAX_COMMENT_LENGTH:
        raise ValueError(f"Comment must be {MAX_COMMENT_LENGTH} characters or less")
    return cleaned


class CreateCommentRequest(BaseModel):
    """Request to add a comment to a project."""

    body: str
    parent_id: UUID | None = None
    file_id: UUID | None = None
    version_id: UUID | None = None
    timestamp_ms: int | None = Field(default=None, ge=0)

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str) -> str:
        return _validate_body(v)

    @model_validator(mode="after")
    def validate_anchor(self) -> "CreateCommentRequest":
        """A comment is anchored to a file or a version, not both."""
        if self.file_id and self.version_id:
            raise ValueError("Provide at most one context: file_id or version_id")
        return self


class UpdateCommentRequest(BaseModel):
    """Request to edit a comment or change its resolved state."""

    body: str | None = None
    resolved: bool | None = None

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_body(v)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "UpdateCommentRequest":
        if self.body is None and self.resolved is None:
            raise ValueError("Nothing to update")
        return self


class CommentResponse(BaseModel):
    """Response for a comment."""

    id: str
    project_id: str
    author_id: str
    author: str | None
    parent_id: str | None
    file_id: str | None
    version_id: str | None
    timestamp_ms: int | None
    body: str
    resolved: bool
    edited: bool
    created_at: str
    updated_at: str


class DeleteCommentResponse(BaseModel):
    success: bool
