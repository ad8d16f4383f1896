"""
Post API Endpoints.

Posts with image attachments, their replies, and search.
"""

from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import get_app_settings, get_current_user, get_db, get_upload_storage
from agora.api.serializers import (
    CamelModel,
    parse,
    post_detail,
    post_summary,
    reply_view,
)
from agora.core.config import Settings
from agora.models.user import User
from agora.modules.auth.policy import Action, authorize
from agora.modules.forum.service import ForumService
from agora.modules.uploads.storage import UploadStorage

router = APIRouter()


# ==================== Schemas ====================


class CreatePostForm(CamelModel):
    """Fields of the multipart post form."""

    forum_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)


class UpdatePostRequest(CamelModel):
    """Update post title and/or content."""

    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)


class CreateReplyRequest(CamelModel):
    """Create reply, optionally answering another reply."""

    content: str = Field(min_length=1)
    parent_id: str | None = None


class UpdateReplyRequest(CamelModel):
    """Update reply content."""

    content: str = Field(min_length=1)


# ==================== Posts ====================


@router.get("/posts")
async def list_posts(
    forum_id: str | None = Query(None, alias="forumId", description="Filter by forum"),
    limit: int | None = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> list[dict[str, Any]]:
    """Get posts, pinned first then newest."""
    forum = ForumService(db)
    posts = await forum.list_posts(
        forum_id=forum_id,
        limit=limit or settings.forum_posts_per_page,
        offset=offset,
    )
    return [post_summary(p) for p in posts]


@router.get("/search")
async def search_posts(
    q: str | None = Query(None, description="Search text"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Search posts by title or content. Blank query returns nothing."""
    forum = ForumService(db)
    posts = await forum.search_posts(q or "", offset=offset, limit=limit)
    return [post_summary(p) for p in posts]


@router.get("/posts/{post_id}")
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Get post with attachments. Counts a view."""
    forum = ForumService(db)
    return post_detail(await forum.view_post(post_id))


@router.post("/posts", status_code=201)
async def create_post(
    title: str = Form(""),
    content: str = Form(""),
    forum_id: str = Form("", alias="forumId"),
    attachments: list[UploadFile] | None = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage),
) -> dict[str, Any]:
    """
    Create post from a multipart form.

    Up to ``max_attachments_per_post`` images are admitted before the
    post is written; stored files are removed again if the write fails.
    """
    authorize(user, Action.CREATE_POST)
    form = parse(CreatePostForm, {"forumId": forum_id, "title": title, "content": content})
    admitted = await storage.admit_many(attachments or [], field="attachments")

    stored = await storage.save_many(admitted)
    forum = ForumService(db)
    try:
        post = await forum.create_post(
            user,
            forum_id=form.forum_id,
            title=form.title,
            content=form.content,
            attachments=stored,
        )
    except Exception:
        await storage.discard(stored)
        raise

    return post_detail(post)


@router.put("/posts/{post_id}")
async def update_post(
    post_id: str,
    request: UpdatePostRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Update post. Author, admins and moderators."""
    forum = ForumService(db)
    post = await forum.update_post(
        user,
        post_id,
        title=request.title,
        content=request.content,
    )
    return post_detail(post)


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Delete post with its replies and attachments."""
    forum = ForumService(db)
    await forum.delete_post(user, post_id)
    return {"message": "Post deleted successfully"}


# ==================== Replies ====================


@router.get("/posts/{post_id}/replies")
async def list_replies(
    post_id: str,
    limit: int | None = Query(None, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> list[dict[str, Any]]:
    """Get replies of a post, oldest first."""
    forum = ForumService(db)
    replies = await forum.list_replies(
        post_id,
        offset=offset,
        limit=limit or settings.forum_replies_per_page,
    )
    return [reply_view(r) for r in replies]


@router.post("/posts/{post_id}/replies", status_code=201)
async def create_reply(
    post_id: str,
    request: CreateReplyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Reply to a post."""
    forum = ForumService(db)
    reply = await forum.create_reply(
        user,
        post_id,
        content=request.content,
        parent_id=request.parent_id,
    )
    return reply_view(reply)


@router.put("/replies/{reply_id}")
async def update_reply(
    reply_id: str,
    request: UpdateReplyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Update reply content. Author, admins and moderators."""
    forum = ForumService(db)
    reply = await forum.update_reply(user, reply_id, content=request.content)
    return reply_view(reply)


@router.delete("/replies/{reply_id}")
async def delete_reply(
    reply_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Delete reply."""
    forum = ForumService(db)
    await forum.delete_reply(user, reply_id)
    return {"message": "Reply deleted successfully"}
