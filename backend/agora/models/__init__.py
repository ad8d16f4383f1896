"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from agora.models.forum import Attachment, Forum, Post, Reply
from agora.models.session import UserSession
from agora.models.user import STAFF_ROLES, User, UserRole

__all__ = [
    "Attachment",
    "Forum",
    "Post",
    "Reply",
    "STAFF_ROLES",
    "User",
    "UserRole",
    "UserSession",
]
