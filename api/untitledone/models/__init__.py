"""Database models for the UntitledOne collaboration API."""

from untitledone.models.comment import Comment, CommentMention
from untitledone.models.notification import Notification, NotificationPreferences
from untitledone.models.project import Project, ProjectMember
from untitledone.models.share_link import ShareLink
from untitledone.models.user import User

__all__ = [
    "User",
    "Project",
    "ProjectMember",
    "Comment",
    "CommentMention",
    "Notification",
    "NotificationPreferences",
    "ShareLink",
]
