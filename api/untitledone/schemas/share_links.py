"""Share link Pydantic schemas."""

from pydantic import BaseModel


class ShareLinkCreatedResponse(BaseModel):
    """Response for a newly issued share link."""

    id: str
    url: str
    token: str
    expires_at: str
    created_at: str


class ShareLinkItem(BaseModel):
    """Share link as listed for project members."""

    id: str
    url: str
    token: str
    status: str
    created_by: str
    creator: str | None
    expires_at: str
    created_at: str
    used_by: str | None
    used_at: str | None
    revoked: bool


class RevokeShareLinkResponse(BaseModel):
    success: bool


class RedeemShareLinkResponse(BaseModel):
    project_id: str


class RedemptionErrorResponse(BaseModel):
    """Explanation of why a share link could not be redeemed."""

    reason: str
    message: str
