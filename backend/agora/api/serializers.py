"""
Shared request base model and response builders.

The public API speaks camelCase JSON.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from agora.core.exceptions import ValidationError
from agora.models.forum import Attachment, Forum, Post, Reply
from agora.models.user import User


class CamelModel(BaseModel):
    """Request body accepting camelCase (and snake_case) keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def field_errors(errors: list[Any]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts to ``{field, message}``."""
    result = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        result.append({"field": ".".join(loc) or "body", "message": error.get("msg", "")})
    return result


def parse(model: type[BaseModel], data: dict[str, Any]) -> Any:
    """Validate data against model, raising the API ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(errors=field_errors(e.errors()))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ==================== Users ====================


def user_summary(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": user.role.value,
        "profileImageUrl": user.profile_image_url,
    }


def user_profile(user: User) -> dict[str, Any]:
    return {
        **user_summary(user),
        "authType": user.auth_type,
        "emailVerified": user.email_verified,
    }


def user_admin_view(user: User) -> dict[str, Any]:
    return {
        **user_profile(user),
        "username": user.username,
        "banned": user.banned,
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def author_summary(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.display_name,
        "avatar": user.avatar,
        "role": user.role.value,
    }


# ==================== Forums ====================


def forum_view(forum: Forum) -> dict[str, Any]:
    return {
        "id": forum.id,
        "title": forum.title,
        "description": forum.description,
        "slug": forum.slug,
        "category": forum.category,
        "icon": forum.icon,
        "color": forum.color,
        "views": forum.views,
        "postCount": forum.post_count,
        "createdAt": _iso(forum.created_at),
        "updatedAt": _iso(forum.updated_at),
    }


def forum_summary(forum: Forum | None) -> dict[str, Any] | None:
    if forum is None:
        return None
    return {"id": forum.id, "title": forum.title, "slug": forum.slug}


# ==================== Posts ====================


def attachment_view(attachment: Attachment) -> dict[str, Any]:
    return {
        "id": attachment.id,
        "postId": attachment.post_id,
        "fileName": attachment.file_name,
        "fileUrl": attachment.file_url,
        "fileType": attachment.file_type,
        "fileSize": attachment.file_size,
        "createdAt": _iso(attachment.created_at),
    }


def post_summary(post: Post) -> dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "authorId": post.author_id,
        "forumId": post.forum_id,
        "views": post.views,
        "replyCount": post.reply_count,
        "pinned": post.pinned,
        "locked": post.locked,
        "createdAt": _iso(post.created_at),
        "updatedAt": _iso(post.updated_at),
        "author": author_summary(post.author),
        "forum": forum_summary(post.forum),
    }


def post_detail(post: Post) -> dict[str, Any]:
    return {
        **post_summary(post),
        "attachments": [attachment_view(a) for a in post.attachments],
    }


# ==================== Replies ====================


def reply_view(reply: Reply) -> dict[str, Any]:
    return {
        "id": reply.id,
        "content": reply.content,
        "authorId": reply.author_id,
        "postId": reply.post_id,
        "parentId": reply.parent_id,
        "createdAt": _iso(reply.created_at),
        "updatedAt": _iso(reply.updated_at),
        "author": author_summary(reply.author),
    }
