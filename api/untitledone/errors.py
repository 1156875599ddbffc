"""Helpers for the API's consistent error body."""

from fastapi import HTTPException, status


def api_error(status_code: int, code: str, message: str) -> HTTPException:
    """Build an HTTPException carrying ``{"error": {"code", "message"}}``."""
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
            }
        },
    )


def not_found(message: str) -> HTTPException:
    return api_error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", message)


def forbidden(message: str = "Access denied") -> HTTPException:
    return api_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", message)


def validation_error(message: str) -> HTTPException:
    return api_error(status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", message)


def unauthorized(message: str = "Authentication required") -> HTTPException:
    return api_error(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", message)
