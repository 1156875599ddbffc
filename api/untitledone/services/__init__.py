"""Services for the UntitledOne collaboration API."""

from untitledone.services.delivery import DeliveryDecision, EmailChannel, decide_delivery
from untitledone.services.email import EmailSender, get_email_sender
from untitledone.services.mention_pipeline import process_comment_mentions, run_best_effort
from untitledone.services.mentions import get_new_mentions, parse_mentions
from untitledone.services.share_links import (
    RedemptionReason,
    RedemptionResult,
    ShareLinkRedeemer,
    ShareLinkService,
)

__all__ = [
    "parse_mentions",
    "get_new_mentions",
    "decide_delivery",
    "DeliveryDecision",
    "EmailChannel",
    "EmailSender",
    "get_email_sender",
    "process_comment_mentions",
    "run_best_effort",
    "ShareLinkService",
    "ShareLinkRedeemer",
    "RedemptionReason",
    "RedemptionResult",
]
