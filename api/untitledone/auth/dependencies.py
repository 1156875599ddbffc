"""Authentication dependencies for FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from untitledone.auth.jwt import decode_token
from untitledone.config import settings
from untitledone.database import get_db
from untitledone.errors import unauthorized
from untitledone.models.user import User

logger = logging.getLogger(__name__)


def _extract_token(request: Request, authorization: str | None) -> str | None:
    """Read the session token from the Bearer header, falling back to the cookie."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return None
    return request.cookies.get(settings.session_cookie_name)


async def _resolve_user(db: AsyncSession, token: str | None) -> User | None:
    if not token:
        return None

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Validate the session token and return the authenticated user.

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired, or
            refers to an unknown user
    """
    token = _extract_token(request, authorization)
    if not token:
        raise unauthorized("Authentication required")

    user = await _resolve_user(db, token)
    if user is None:
        logger.info("Rejected session token on %s", request.url.path)
        raise unauthorized("Invalid or expired session")

    return user


async def get_optional_user(
    request: Request,
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like :func:`get_current_user`, but returns None instead of raising."""
    try:
        return await get_current_user(request, authorization, db)
    except HTTPException:
        return None
