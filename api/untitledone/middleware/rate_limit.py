"""Rate limiting middleware using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

# IP-based limits on share link issuance, redemption and member autocomplete.
limiter = Limiter(key_func=get_remote_address)


def reset_limiter() -> None:
    """Reset the limiter storage. Used in tests to clear rate limit state."""
    limiter.reset()
