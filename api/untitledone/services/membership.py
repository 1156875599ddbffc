"""Project membership checks shared by mentions, comments and share links."""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from untitledone.errors import forbidden, not_found
from untitledone.models.project import Project, ProjectMember
from untitledone.models.user import User


async def get_project(db: AsyncSession, project_id: UUID) -> Project | None:
    result = await db.execute(select(Project).where(Project.id == project_id))
    return result.scalar_one_or_none()


async def is_project_member(db: AsyncSession, project: Project, user_id: UUID) -> bool:
    """True if the user owns the project or has a membership row."""
    if project.owner_id == user_id:
        return True

    result = await db.execute(
        select(ProjectMember.id).where(
            ProjectMember.project_id == project.id,
            ProjectMember.user_id == user_id,
        )
    )
    return result.first() is not None


async def require_project_member(db: AsyncSession, project_id: UUID, user: User) -> Project:
    """
    Load a project the user belongs to.

    Raises:
        HTTPException: 404 if the project does not exist, 403 if the user
            is neither owner nor member
    """
    project = await get_project(db, project_id)
    if project is None:
        raise not_found("Project not found")
    if not await is_project_member(db, project, user.id):
        raise forbidden("Access denied")
    return project


def _member_ids_query(project: Project):
    """Select the ids of everyone in the project, owner included."""
    return union(
        select(Project.owner_id.label("user_id")).where(Project.id == project.id),
        select(ProjectMember.user_id.label("user_id")).where(ProjectMember.project_id == project.id),
    ).subquery()


async def validate_mentions(
    db: AsyncSession,
    usernames: list[str],
    project_id: UUID,
) -> list[dict[str, Any]]:
    """
    Keep only usernames that resolve to members of the project.

    Returns ``[{"id", "username"}]``. A missing project yields an empty list.
    """
    if not usernames:
        return []

    project = await get_project(db, project_id)
    if project is None:
        return []

    members = _member_ids_query(project)
    wanted = {username.lower() for username in usernames}
    result = await db.execute(
        select(User.id, User.username)
        .join(members, members.c.user_id == User.id)
        .where(func.lower(User.username).in_(wanted))
    )
    by_name = {row.username.lower(): row for row in result.all()}

    # Preserve the order the mentions appeared in.
    return [
        {"id": by_name[username].id, "username": by_name[username].username}
        for username in dict.fromkeys(u.lower() for u in usernames)
        if username in by_name
    ]


async def search_members(
    db: AsyncSession,
    project: Project,
    query: str,
    limit: int = 5,
) -> list[User]:
    """Members (owner included) whose username contains ``query``, case-insensitively."""
    members = _member_ids_query(project)
    pattern = f"%{_escape_like(query.lower())}%"
    result = await db.execute(
        select(User)
        .join(members, members.c.user_id == User.id)
        .where(func.lower(User.username).like(pattern, escape="\\"))
        .order_by(User.username)
        .limit(limit)
    )
    return list(result.scalars().all())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
