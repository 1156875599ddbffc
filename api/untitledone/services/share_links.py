"""
Temporary share links.

A link grants viewer access to one project, once, within an hour of being
issued. Its status is derived from its columns (see ``ShareLink.status``)
and only ever moves from active to used, expired or revoked.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from untitledone.config import settings
from untitledone.database import utcnow
from untitledone.errors import api_error, forbidden, not_found
from untitledone.models.project import Project, ProjectMember
from untitledone.models.share_link import ShareLink
from untitledone.models.user import User
from untitledone.services.membership import get_project, is_project_member, require_project_member

logger = logging.getLogger(__name__)


class RedemptionReason(str, Enum):
    NOT_FOUND = "not_found"
    REVOKED = "revoked"
    EXPIRED = "expired"
    USED = "used"
    PROJECT_NOT_FOUND = "project_not_found"
    FAILED_TO_ADD_MEMBER = "failed_to_add_member"


REDEMPTION_MESSAGES = {
    RedemptionReason.NOT_FOUND: "This share link does not exist.",
    RedemptionReason.REVOKED: "This share link was revoked by its creator or the project owner.",
    RedemptionReason.EXPIRED: "This share link has expired. Share links are valid for one hour.",
    RedemptionReason.USED: "This share link has already been used by someone else.",
    RedemptionReason.PROJECT_NOT_FOUND: "The project for this share link no longer exists.",
    RedemptionReason.FAILED_TO_ADD_MEMBER: "We couldn't add you to the project. Please try the link again.",
}


@dataclass(frozen=True)
class RedemptionResult:
    """Outcome of a redemption: a project id on success, otherwise a reason."""

    project_id: UUID | None = None
    reason: RedemptionReason | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None


def generate_token() -> str:
    """URL-safe token carrying 256 bits of randomness."""
    return secrets.token_urlsafe(32)


def share_url(token: str) -> str:
    return f"{settings.site_origin}/share/{token}"


def _active_clause(now: datetime):
    return (
        ShareLink.revoked.is_(False),
        ShareLink.used_by.is_(None),
        ShareLink.expires_at > now,
    )


class ShareLinkService:
    """Issue, list and revoke share links for a project."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue(
        self,
        project_id: UUID,
        user: User,
        now: datetime | None = None,
    ) -> tuple[ShareLink, str]:
        """
        Create a new active link for the project.

        Raises:
            HTTPException: 404 if the project is missing, 403 if the user is
                not a member, 400 if the project already has the maximum
                number of active links
        """
        now = now or utcnow()
        await require_project_member(self.db, project_id, user)

        # Serialize concurrent issuance per project before counting.
        await self.db.execute(select(Project.id).where(Project.id == project_id).with_for_update())

        result = await self.db.execute(
            select(func.count(ShareLink.id)).where(
                ShareLink.project_id == project_id,
                *_active_clause(now),
            )
        )
        active = result.scalar() or 0
        if active >= settings.max_active_share_links:
            raise api_error(
                status.HTTP_400_BAD_REQUEST,
                "SHARE_LINK_LIMIT",
                f"Maximum of {settings.max_active_share_links} active links reached",
            )

        link = ShareLink(
            project_id=project_id,
            token=generate_token(),
            created_by=user.id,
            expires_at=now + timedelta(minutes=settings.share_link_ttl_minutes),
            revoked=False,
            created_at=now,
        )
        self.db.add(link)
        await self.db.flush()

        logger.info("User %s issued share link %s for project %s", user.id, link.id, project_id)
        return link, share_url(link.token)

    async def list_links(self, project_id: UUID, user: User) -> list[ShareLink]:
        """All links of the project, newest first, with their creators loaded."""
        await require_project_member(self.db, project_id, user)
        result = await self.db.execute(
            select(ShareLink)
            .options(selectinload(ShareLink.creator))
            .where(ShareLink.project_id == project_id)
            .order_by(ShareLink.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def revoke(self, project_id: UUID, link_id: UUID, user: User) -> ShareLink:
        """Revoke a link. Only its creator or the project owner may do so."""
        project = await get_project(self.db, project_id)
        if project is None:
            raise not_found("Project not found")

        result = await self.db.execute(
            select(ShareLink).where(
                ShareLink.id == link_id,
                ShareLink.project_id == project_id,
            )
        )
        link = result.scalar_one_or_none()
        if link is None:
            raise not_found("Share link not found")

        if user.id not in (link.created_by, project.owner_id):
            raise forbidden("Only the link creator or project owner can revoke")

        if not link.revoked:
            link.revoked = True
            await self.db.flush()
            logger.info("User %s revoked share link %s", user.id, link.id)
        return link


class ShareLinkRedeemer:
    """Turns an active link into a viewer membership for exactly one user."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_link(self, token: str) -> ShareLink | None:
        result = await self.db.execute(
            select(ShareLink).where(ShareLink.token == token).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _claim(self, link_id: UUID, user_id: UUID, now: datetime) -> bool:
        """Mark the link used by ``user_id`` unless someone got there first."""
        result = await self.db.execute(
            update(ShareLink)
            .where(
                ShareLink.id == link_id,
                ShareLink.used_by.is_(None),
                ShareLink.revoked.is_(False),
            )
            .values(used_by=user_id, used_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _grant_viewer(self, project: Project, link: ShareLink, user: User) -> None:
        self.db.add(
            ProjectMember(
                project_id=project.id,
                user_id=user.id,
                role="viewer",
                added_by=link.created_by,
            )
        )
        await self.db.flush()

    async def _current_holder(self, link_id: UUID) -> tuple[UUID | None, bool]:
        result = await self.db.execute(
            select(ShareLink.used_by, ShareLink.revoked).where(ShareLink.id == link_id)
        )
        row = result.one()
        return row.used_by, row.revoked

    async def redeem(self, token: str, user: User, now: datetime | None = None) -> RedemptionResult:
        """
        Redeem ``token`` for ``user``.

        Checks run in a fixed order so the reported reason is stable:
        not_found, revoked, expired, used, project_not_found. Redeeming a
        link the same user already redeemed succeeds without changes.
        """
        now = now or utcnow()

        link = await self._find_link(token)
        if link is None:
            return RedemptionResult(reason=RedemptionReason.NOT_FOUND)
        if link.revoked:
            return RedemptionResult(reason=RedemptionReason.REVOKED)
        if link.is_expired(now):
            return RedemptionResult(reason=RedemptionReason.EXPIRED)
        if link.used_by is not None:
            if link.used_by == user.id:
                return RedemptionResult(project_id=link.project_id)
            return RedemptionResult(reason=RedemptionReason.USED)

        project = await get_project(self.db, link.project_id)
        if project is None:
            return RedemptionResult(reason=RedemptionReason.PROJECT_NOT_FOUND)

        # Plain ids stay usable if the savepoint rolls back and expires objects.
        link_id, project_id, user_id = link.id, project.id, user.id

        try:
            # The claim and the grant commit together or not at all.
            async with self.db.begin_nested():
                claimed = await self._claim(link_id, user_id, now)
                if claimed and not await is_project_member(self.db, project, user_id):
                    await self._grant_viewer(project, link, user)
        except SQLAlchemyError:
            logger.exception(
                "Failed to add user %s to project %s via share link %s", user_id, project_id, link_id
            )
            return RedemptionResult(reason=RedemptionReason.FAILED_TO_ADD_MEMBER)

        if not claimed:
            used_by, revoked = await self._current_holder(link_id)
            if used_by == user_id:
                return RedemptionResult(project_id=project_id)
            if used_by is None and revoked:
                return RedemptionResult(reason=RedemptionReason.REVOKED)
            logger.info("Share link %s lost redemption race to %s", link_id, used_by)
            return RedemptionResult(reason=RedemptionReason.USED)

        logger.info("User %s redeemed share link %s for project %s", user_id, link_id, project_id)
        return RedemptionResult(project_id=project_id)
