"""Project comments router. Creating and editing comments drives @mentions."""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from untitledone.auth.dependencies import get_current_user
from untitledone.database import as_utc, get_db
from untitledone.errors import forbidden, not_found
from untitledone.models.comment import Comment
from untitledone.models.user import User
from untitledone.schemas.comments import (
    CommentResponse,
    CreateCommentRequest,
    DeleteCommentResponse,
    UpdateCommentRequest,
)
from untitledone.services.email import EmailSender, OutgoingEmail, get_email_sender
from untitledone.services.membership import require_project_member
from untitledone.services.mention_pipeline import process_comment_mentions, run_best_effort

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projects/{project_id}/comments", tags=["Comments"])


def _comment_response(comment: Comment, author: User | None) -> CommentResponse:
    return CommentResponse(
        id=str(comment.id),
        project_id=str(comment.project_id),
        author_id=str(comment.author_id),
        author=author.name if author else None,
        parent_id=str(comment.parent_id) if comment.parent_id else None,
        file_id=str(comment.file_id) if comment.file_id else None,
        version_id=str(comment.version_id) if comment.version_id else None,
        timestamp_ms=comment.timestamp_ms,
        body=comment.body,
        resolved=comment.resolved,
        edited=comment.edited,
        created_at=as_utc(comment.created_at).isoformat(),
        updated_at=as_utc(comment.updated_at).isoformat(),
    )


def _queue_emails(background_tasks: BackgroundTasks, sender: EmailSender, emails: list[OutgoingEmail]) -> None:
    for email in emails:
        background_tasks.add_task(sender.deliver, email)


async def _get_comment(db: AsyncSession, project_id: UUID, comment_id: UUID) -> Comment:
    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(
            Comment.id == comment_id,
            Comment.project_id == project_id,
        )
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise not_found(f"Comment '{comment_id}' not found")
    return comment


# --- List Comments ---


@router.get(
    "",
    response_model=list[CommentResponse],
    status_code=status.HTTP_200_OK,
)
async def list_comments(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    cursor: datetime | None = Query(default=None, description="created_at of the last item seen"),
    limit: int = Query(default=20, ge=1, le=200, description="Items per page"),
    file_id: UUID | None = Query(default=None),
    version_id: UUID | None = Query(default=None),
) -> list[CommentResponse]:
    """List a project's comments, newest first."""
    await require_project_member(db, project_id, user)

    query = select(Comment).options(selectinload(Comment.author)).where(Comment.project_id == project_id)
    if file_id:
        query = query.where(Comment.file_id == file_id)
    if version_id:
        query = query.where(Comment.version_id == version_id)
    if cursor:
        query = query.where(Comment.created_at < as_utc(cursor))

    query = query.order_by(Comment.created_at.desc()).limit(limit)
    result = await db.execute(query)
    return [_comment_response(comment, comment.author) for comment in result.scalars().all()]


# --- Create Comment ---


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    project_id: UUID,
    data: CreateCommentRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    sender: EmailSender = Depends(get_email_sender),
) -> CommentResponse:
    """
    Add a comment to a project.

    Mentioned project members are notified; instant emails go out after the
    response is sent.
    """
    await require_project_member(db, project_id, user)

    if data.parent_id:
        await _get_comment(db, project_id, data.parent_id)

    comment = Comment(
        project_id=project_id,
        author_id=user.id,
        parent_id=data.parent_id,
        file_id=data.file_id,
        version_id=data.version_id,
        timestamp_ms=data.timestamp_ms,
        body=data.body,
    )
    db.add(comment)
    await db.flush()

    emails = await run_best_effort(
        "comment mentions",
        process_comment_mentions,
        db,
        comment,
        user,
        default=[],
    )
    _queue_emails(background_tasks, sender, emails)

    return _comment_response(comment, user)


# --- Update Comment ---


@router.put(
    "/{comment_id}",
    response_model=CommentResponse,
    status_code=status.HTTP_200_OK,
)
async def update_comment(
    project_id: UUID,
    comment_id: UUID,
    data: UpdateCommentRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    sender: EmailSender = Depends(get_email_sender),
) -> CommentResponse:
    """
    Edit a comment's body or resolved state.

    Only mentions added by the edit notify anyone, and edits of resolved
    comments notify nobody.
    """
    project = await require_project_member(db, project_id, user)
    comment = await _get_comment(db, project_id, comment_id)

    is_author = comment.author_id == user.id
    if data.body is not None and not is_author:
        raise forbidden("Only the author can edit this comment")
    if data.resolved is not None and not (is_author or project.owner_id == user.id):
        raise forbidden("Only the author or project owner can resolve this comment")

    previous_body = comment.body
    body_changed = data.body is not None and data.body != previous_body

    if body_changed:
        comment.body = data.body
        comment.edited = True
    if data.resolved is not None:
        comment.resolved = data.resolved
    await db.flush()

    if body_changed:
        emails = await run_best_effort(
            "comment edit mentions",
            process_comment_mentions,
            db,
            comment,
            user,
            previous_text=previous_body,
            default=[],
        )
        _queue_emails(background_tasks, sender, emails)

    return _comment_response(comment, comment.author)


# --- Delete Comment ---


@router.delete(
    "/{comment_id}",
    response_model=DeleteCommentResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_comment(
    project_id: UUID,
    comment_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DeleteCommentResponse:
    """Delete a comment. Allowed for its author and the project owner."""
    project = await require_project_member(db, project_id, user)
    comment = await _get_comment(db, project_id, comment_id)

    if user.id not in (comment.author_id, project.owner_id):
        raise forbidden("Only the author or project owner can delete this comment")

    await db.delete(comment)
    await db.flush()
    logger.info("User %s deleted comment %s", user.id, comment_id)

    return DeleteCommentResponse(success=True)
