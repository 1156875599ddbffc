"""Share links router: issuing, listing, revoking and redeeming links."""

from urllib.parse import urlencode
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from untitledone.auth.dependencies import get_current_user, get_optional_user
from untitledone.config import settings
from untitledone.database import as_utc, get_db
from untitledone.errors import api_error, validation_error
from untitledone.middleware.rate_limit import limiter
from untitledone.models.share_link import ShareLink
from untitledone.models.user import User
from untitledone.schemas.share_links import (
    RedeemShareLinkResponse,
    RedemptionErrorResponse,
    RevokeShareLinkResponse,
    ShareLinkCreatedResponse,
    ShareLinkItem,
)
from untitledone.services.share_links import (
    REDEMPTION_MESSAGES,
    RedemptionReason,
    ShareLinkRedeemer,
    ShareLinkService,
    share_url,
)

router = APIRouter(prefix="/api/v1/projects/{project_id}/share-links", tags=["Share Links"])
redeem_router = APIRouter(prefix="/api/v1/share-links", tags=["Share Links"])
browser_router = APIRouter(prefix="/share", tags=["Share Links"])

REASON_STATUS = {
    RedemptionReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RedemptionReason.PROJECT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RedemptionReason.REVOKED: status.HTTP_410_GONE,
    RedemptionReason.EXPIRED: status.HTTP_410_GONE,
    RedemptionReason.USED: status.HTTP_410_GONE,
    RedemptionReason.FAILED_TO_ADD_MEMBER: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _link_item(link: ShareLink) -> ShareLinkItem:
    return ShareLinkItem(
        id=str(link.id),
        url=share_url(link.token),
        token=link.token,
        status=link.status(),
        created_by=str(link.created_by),
        creator=link.creator.name if link.creator else None,
        expires_at=as_utc(link.expires_at).isoformat(),
        created_at=as_utc(link.created_at).isoformat(),
        used_by=str(link.used_by) if link.used_by else None,
        used_at=as_utc(link.used_at).isoformat() if link.used_at else None,
        revoked=link.revoked,
    )


# --- Issue Share Link ---


@router.post(
    "",
    response_model=ShareLinkCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.share_link_create_rate_limit)
async def create_share_link(
    request: Request,
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ShareLinkCreatedResponse:
    """
    Issue a one-hour, single-use link granting viewer access.

    A project can have at most three active links at a time.
    """
    link, url = await ShareLinkService(db).issue(project_id, user)
    return ShareLinkCreatedResponse(
        id=str(link.id),
        url=url,
        token=link.token,
        expires_at=as_utc(link.expires_at).isoformat(),
        created_at=as_utc(link.created_at).isoformat(),
    )


# --- List Share Links ---


@router.get(
    "",
    response_model=list[ShareLinkItem],
    status_code=status.HTTP_200_OK,
)
async def list_share_links(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[ShareLinkItem]:
    """List every link of the project, newest first, with its current status."""
    links = await ShareLinkService(db).list_links(project_id, user)
    return [_link_item(link) for link in links]


# --- Revoke Share Link ---


@router.delete(
    "/{link_id}",
    response_model=RevokeShareLinkResponse,
    status_code=status.HTTP_200_OK,
)
async def revoke_share_link(
    project_id: UUID,
    link_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RevokeShareLinkResponse:
    """Revoke a link. Only its creator or the project owner may do this."""
    await ShareLinkService(db).revoke(project_id, link_id, user)
    return RevokeShareLinkResponse(success=True)


# --- Redeem (API) ---


@redeem_router.post(
    "/{token}/redeem",
    response_model=RedeemShareLinkResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.share_link_redeem_rate_limit)
async def redeem_share_link(
    request: Request,
    token: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RedeemShareLinkResponse:
    """Redeem a link for the current user and return the project it grants."""
    result = await ShareLinkRedeemer(db).redeem(token, user)
    if not result.ok:
        raise api_error(
            REASON_STATUS[result.reason],
            result.reason.value.upper(),
            REDEMPTION_MESSAGES[result.reason],
        )
    return RedeemShareLinkResponse(project_id=str(result.project_id))


# --- Redeem (browser) ---


@browser_router.get("/{token}", include_in_schema=False)
@limiter.limit(settings.share_link_redeem_rate_limit)
async def open_share_link(
    request: Request,
    token: str,
    db: AsyncSession = Depends(get_db),
    user: User | None = Depends(get_optional_user),
) -> RedirectResponse:
    """
    Redeem a link opened in the browser.

    Anonymous visitors are sent to login and come back here afterwards.
    """
    site = settings.site_origin
    if user is None:
        query = urlencode({"redirect": f"/share/{token}"}, safe="/")
        return RedirectResponse(f"{site}{settings.login_path}?{query}", status_code=status.HTTP_302_FOUND)

    result = await ShareLinkRedeemer(db).redeem(token, user)
    if not result.ok:
        query = urlencode({"reason": result.reason.value})
        return RedirectResponse(f"{site}/share/{token}/error?{query}", status_code=status.HTTP_302_FOUND)

    return RedirectResponse(
        f"{site}/projects/{result.project_id}?share_link_redeemed=true",
        status_code=status.HTTP_302_FOUND,
    )


@browser_router.get(
    "/{token}/error",
    response_model=RedemptionErrorResponse,
    status_code=status.HTTP_200_OK,
)
async def share_link_error(
    token: str,
    reason: str = Query(..., description="Failure reason from a redemption attempt"),
) -> RedemptionErrorResponse:
    """Explain a failed redemption."""
    try:
        known = RedemptionReason(reason)
    except ValueError:
        raise validation_error(f"Unknown reason '{reason}'") from None
    return RedemptionErrorResponse(reason=known.value, message=REDEMPTION_MESSAGES[known])
