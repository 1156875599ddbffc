"""JWT session token creation and validation."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from untitledone.config import settings


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    """
    Create an access token for a user.

    Sessions are issued by the hosted auth backend; this is used by tooling
    and tests that need a token signed with the shared secret.
    """
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_token(token: str) -> dict | None:
    """
    Decode and validate a JWT token.

    Returns the payload if valid, None if invalid or expired.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
        return payload
    except jwt.JWTError:
        return None
