"""Pydantic schemas for request/response validation."""

from untitledone.schemas.comments import (
    CommentResponse,
    CreateCommentRequest,
    DeleteCommentResponse,
    UpdateCommentRequest,
)
from untitledone.schemas.members import MemberSuggestion
from untitledone.schemas.notifications import (
    MarkAllReadResponse,
    MarkReadRequest,
    NotificationItem,
    NotificationPreferencesPayload,
    UnreadCountResponse,
)
from untitledone.schemas.share_links import (
    RedeemShareLinkResponse,
    RedemptionErrorResponse,
    RevokeShareLinkResponse,
    ShareLinkCreatedResponse,
    ShareLinkItem,
)

__all__ = [
    "CreateCommentRequest",
    "UpdateCommentRequest",
    "CommentResponse",
    "DeleteCommentResponse",
    "MemberSuggestion",
    "NotificationItem",
    "UnreadCountResponse",
    "MarkReadRequest",
    "MarkAllReadResponse",
    "NotificationPreferencesPayload",
    "ShareLinkCreatedResponse",
    "ShareLinkItem",
    "RevokeShareLinkResponse",
    "RedeemShareLinkResponse",
    "RedemptionErrorResponse",
]
