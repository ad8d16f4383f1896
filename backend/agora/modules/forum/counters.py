"""
Denormalized counter maintenance.

Each helper issues a single UPDATE whose new value is computed by the
database from the committed row, so concurrent writers never lose an
increment and decrements clamp at zero. Callers run these inside the
same unit of work as the mutation they account for.

View counters keep updated_at as is; the column has an onupdate default.
"""

from datetime import datetime

from sqlalchemy import ColumnElement, case, update
from sqlalchemy.ext.asyncio import AsyncSession

from agora.models.forum import Forum, Post


def _floor_decrement(column: ColumnElement[int]) -> ColumnElement[int]:
    return case((column > 0, column - 1), else_=0)


async def increment_forum_posts(db: AsyncSession, forum_id: str) -> None:
    await db.execute(
        update(Forum)
        .where(Forum.id == forum_id)
        .values(post_count=Forum.post_count + 1, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )


async def decrement_forum_posts(db: AsyncSession, forum_id: str) -> None:
    await db.execute(
        update(Forum)
        .where(Forum.id == forum_id)
        .values(
            post_count=_floor_decrement(Forum.post_count),
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


async def increment_post_replies(db: AsyncSession, post_id: str) -> None:
    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(reply_count=Post.reply_count + 1, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )


async def decrement_post_replies(db: AsyncSession, post_id: str) -> None:
    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(
            reply_count=_floor_decrement(Post.reply_count),
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


async def increment_forum_views(db: AsyncSession, slug: str) -> None:
    """Count a forum view. No-op when slug is unknown."""
    await db.execute(
        update(Forum)
        .where(Forum.slug == slug)
        .values(views=Forum.views + 1, updated_at=Forum.updated_at)
        .execution_options(synchronize_session=False)
    )


async def increment_post_views(db: AsyncSession, post_id: str) -> None:
    """Count a post view. No-op when post is unknown."""
    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(views=Post.views + 1, updated_at=Post.updated_at)
        .execution_options(synchronize_session=False)
    )
