"""Project members router: @mention autocomplete."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from untitledone.auth.dependencies import get_current_user
from untitledone.config import settings
from untitledone.database import get_db
from untitledone.middleware.rate_limit import limiter
from untitledone.models.user import User
from untitledone.schemas.members import MemberSuggestion
from untitledone.services.membership import require_project_member, search_members

router = APIRouter(prefix="/api/v1/projects/{project_id}/members", tags=["Members"])


@router.get(
    "/autocomplete",
    response_model=list[MemberSuggestion],
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.autocomplete_rate_limit)
async def autocomplete_members(
    request: Request,
    project_id: UUID,
    q: str = Query(default="", max_length=50, description="Username prefix or fragment"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[MemberSuggestion]:
    """
    Suggest project members whose username contains ``q``.

    The owner is included. Results are ordered by username.
    """
    project = await require_project_member(db, project_id, user)
    members = await search_members(db, project, q.strip(), limit=settings.autocomplete_limit)
    return [MemberSuggestion(id=str(member.id), username=member.username) for member in members]
