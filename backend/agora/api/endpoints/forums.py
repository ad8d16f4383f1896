"""
Forum API Endpoints.

Forum sections: listing, viewing and administration.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import get_current_user, get_db
from agora.api.serializers import CamelModel, forum_view
from agora.models.user import User
from agora.modules.forum.service import ForumService

router = APIRouter()


# ==================== Schemas ====================


class CreateForumRequest(CamelModel):
    """Create new forum."""

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    slug: str | None = Field(None, max_length=255)
    category: str = "general"
    icon: str | None = None
    color: str | None = None


# ==================== Routes ====================


@router.get("")
async def list_forums(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """Get all forums."""
    forum = ForumService(db)
    return [forum_view(f) for f in await forum.list_forums()]


@router.get("/{slug}")
async def get_forum(slug: str, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Get forum by slug. Counts a view."""
    forum = ForumService(db)
    return forum_view(await forum.view_forum(slug))


@router.post("", status_code=201)
async def create_forum(
    request: CreateForumRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create forum. Admins and moderators."""
    forum = ForumService(db)
    created = await forum.create_forum(
        user,
        title=request.title,
        description=request.description,
        slug=request.slug,
        category=request.category,
        icon=request.icon,
        color=request.color,
    )
    return forum_view(created)


@router.delete("/{forum_id}")
async def delete_forum(
    forum_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Delete forum and everything in it. Admin only."""
    forum = ForumService(db)
    await forum.delete_forum(user, forum_id)
    return {"message": "Forum deleted successfully"}
