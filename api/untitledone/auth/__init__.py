"""Session authentication for the UntitledOne API."""

from untitledone.auth.dependencies import get_current_user, get_optional_user
from untitledone.auth.jwt import create_access_token, decode_token

__all__ = [
    "create_access_token",
    "decode_token",
    "get_current_user",
    "get_optional_user",
]
