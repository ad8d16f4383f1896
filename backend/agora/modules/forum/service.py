"""
Forum Service - forums, posts, replies and attachments.
"""

from datetime import datetime

from loguru import logger
from slugify import slugify
from sqlalchemy import Select, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agora.core.database import unit_of_work
from agora.core.exceptions import Conflict, NotFound, ValidationError
from agora.models.forum import Attachment, Forum, Post, Reply
from agora.models.user import User
from agora.modules.auth.policy import Action, authorize
from agora.modules.forum import counters
from agora.modules.uploads.storage import StoredFile


class ForumService:
    """
    Service for managing forums, posts, replies and attachments.

    Every mutation checks the authorization policy, then runs together
    with its counter update in a single unit of work.

    Usage:
        forum = ForumService(db_session)
        posts = await forum.list_posts(forum_id=general.id)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize forum service with database session."""
        self.db = db

    # ==================== Forums ====================

    async def list_forums(self) -> list[Forum]:
        """Get all forums ordered by title."""
        query = select(Forum).order_by(Forum.title)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_forum(self, forum_id: str) -> Forum | None:
        """Get forum by ID."""
        query = (
            select(Forum)
            .where(Forum.id == forum_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_forum_by_slug(self, slug: str) -> Forum | None:
        """Get forum by slug."""
        query = (
            select(Forum)
            .where(Forum.slug == slug)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def view_forum(self, slug: str) -> Forum:
        """
        Count a view, then fetch the forum.

        The view is recorded before the lookup, so an unknown slug is
        still a (no-op) increment followed by NotFound.
        """
        async with unit_of_work(self.db):
            await counters.increment_forum_views(self.db, slug)

        forum = await self.get_forum_by_slug(slug)
        if forum is None:
            raise NotFound("Forum not found")
        return forum

    async def _unique_slug(self, base_slug: str) -> str:
        slug = base_slug
        counter = 1
        while await self.get_forum_by_slug(slug):
            slug = f"{base_slug}-{counter}"
            counter += 1
        return slug

    async def create_forum(
        self,
        actor: User | None,
        title: str,
        description: str,
        slug: str | None = None,
        category: str = "general",
        icon: str | None = None,
        color: str | None = None,
    ) -> Forum:
        """
        Create new forum. Admins and moderators.

        Args:
            actor: Requesting user
            title: Forum title
            description: Forum description
            slug: URL slug, derived from title when omitted
            category: Grouping label
            icon: Icon class name
            color: Hex color

        Returns:
            Created forum

        Raises:
            Conflict: explicit slug already taken
            ValidationError: explicit slug has no usable characters
        """
        authorize(actor, Action.CREATE_FORUM)

        async with unit_of_work(self.db):
            if slug:
                slug = slugify(slug)
                if not slug:
                    raise ValidationError.for_field(
                        "slug", "Slug must contain letters or digits"
                    )
                if await self.get_forum_by_slug(slug):
                    raise Conflict("Forum slug already in use")
            else:
                slug = await self._unique_slug(slugify(title)[:200] or "forum")

            forum = Forum(
                title=title,
                slug=slug,
                description=description,
                category=category or "general",
                icon=icon,
                color=color or "#3b82f6",
            )
            self.db.add(forum)
            await self.db.flush()

        logger.info(f"Forum '{forum.slug}' created by {actor.id}")
        return forum

    async def delete_forum(self, actor: User | None, forum_id: str) -> None:
        """Delete forum with all its posts, replies and attachments. Admin only."""
        authorize(actor, Action.DELETE_FORUM)

        async with unit_of_work(self.db):
            forum = await self.get_forum(forum_id)
            if forum is None:
                raise NotFound("Forum not found")

            post_ids = select(Post.id).where(Post.forum_id == forum_id)
            await self.db.execute(
                delete(Attachment).where(Attachment.post_id.in_(post_ids))
            )
            await self.db.execute(delete(Reply).where(Reply.post_id.in_(post_ids)))
            await self.db.execute(delete(Post).where(Post.forum_id == forum_id))
            await self.db.execute(delete(Forum).where(Forum.id == forum_id))

        logger.info(f"Forum {forum_id} deleted by {actor.id}")

    # ==================== Posts ====================

    def _post_query(self) -> Select[tuple[Post]]:
        return select(Post).options(
            selectinload(Post.author),
            selectinload(Post.forum),
        )

    async def list_posts(
        self,
        forum_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Post]:
        """
        Get posts with pagination.

        Args:
            forum_id: Filter by forum
            limit: Max results
            offset: Pagination offset

        Returns:
            Posts, pinned first then newest first
        """
        query = self._post_query()

        if forum_id:
            query = query.where(Post.forum_id == forum_id)

        query = (
            query.order_by(Post.pinned.desc(), Post.created_at.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def search_posts(
        self,
        query_text: str,
        offset: int = 0,
        limit: int = 20,
    ) -> list[Post]:
        """
        Case-insensitive substring search on title or content.

        A blank query matches nothing.
        """
        needle = (query_text or "").strip()
        if not needle:
            return []

        query = (
            self._post_query()
            .where(
                Post.title.icontains(needle, autoescape=True)
                | Post.content.icontains(needle, autoescape=True)
            )
            .order_by(Post.created_at.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_post(self, post_id: str) -> Post | None:
        """Get post with author, forum and attachments."""
        query = (
            self._post_query()
            .options(selectinload(Post.attachments))
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def view_post(self, post_id: str) -> Post:
        """Count a view, then fetch the post."""
        async with unit_of_work(self.db):
            await counters.increment_post_views(self.db, post_id)

        post = await self.get_post(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    async def _get_post_or_404(self, post_id: str) -> Post:
        post = await self.db.get(Post, post_id, populate_existing=True)
        if post is None:
            raise NotFound("Post not found")
        return post

    async def create_post(
        self,
        actor: User | None,
        forum_id: str,
        title: str,
        content: str,
        attachments: list[StoredFile] | None = None,
    ) -> Post:
        """
        Create new post in forum.

        Args:
            actor: Author
            forum_id: Target forum ID
            title: Post title
            content: Post content
            attachments: Files already admitted and stored

        Returns:
            Created post with author, forum and attachments
        """
        authorize(actor, Action.CREATE_POST)

        async with unit_of_work(self.db):
            if await self.get_forum(forum_id) is None:
                raise NotFound("Forum not found")

            post = Post(
                forum_id=forum_id,
                author_id=actor.id,
                title=title,
                content=content,
            )
            self.db.add(post)
            await self.db.flush()

            for stored in attachments or []:
                self.db.add(_attachment_from(post.id, stored))

            await counters.increment_forum_posts(self.db, forum_id)

        return await self.get_post(post.id)

    async def update_post(
        self,
        actor: User | None,
        post_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> Post:
        """Update post title/content. Author, admins and moderators."""
        async with unit_of_work(self.db):
            post = await self._get_post_or_404(post_id)
            authorize(actor, Action.EDIT_POST, post)

            if title is not None:
                post.title = title
            if content is not None:
                post.content = content
            post.updated_at = datetime.utcnow()

        return await self.get_post(post_id)

    async def delete_post(self, actor: User | None, post_id: str) -> None:
        """
        Delete post with its replies and attachments.

        The forum's post count is decremented in the same transaction.
        """
        async with unit_of_work(self.db):
            post = await self._get_post_or_404(post_id)
            authorize(actor, Action.DELETE_POST, post)
            forum_id = post.forum_id

            await self.db.execute(delete(Attachment).where(Attachment.post_id == post_id))
            await self.db.execute(delete(Reply).where(Reply.post_id == post_id))
            result = await self.db.execute(delete(Post).where(Post.id == post_id))
            if result.rowcount != 1:
                # Removed by a concurrent delete since it was loaded
                raise NotFound("Post not found")

            await counters.decrement_forum_posts(self.db, forum_id)

        logger.info(f"Post {post_id} deleted by {actor.id}")

    # ==================== Replies ====================

    def _reply_query(self) -> Select[tuple[Reply]]:
        return select(Reply).options(selectinload(Reply.author))

    async def list_replies(
        self,
        post_id: str,
        offset: int = 0,
        limit: int = 50,
    ) -> list[Reply]:
        """Get replies of a post, oldest first."""
        query = (
            self._reply_query()
            .where(Reply.post_id == post_id)
            .order_by(Reply.created_at)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_reply(self, reply_id: str) -> Reply | None:
        """Get reply by ID with author info."""
        query = (
            self._reply_query()
            .where(Reply.id == reply_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _get_reply_or_404(self, reply_id: str) -> Reply:
        reply = await self.db.get(Reply, reply_id, populate_existing=True)
        if reply is None:
            raise NotFound("Reply not found")
        return reply

    async def create_reply(
        self,
        actor: User | None,
        post_id: str,
        content: str,
        parent_id: str | None = None,
    ) -> Reply:
        """
        Create reply on post.

        Args:
            actor: Author
            post_id: Post being replied to
            content: Reply content
            parent_id: Reply being answered; dropped unless it is a reply
                on the same post

        Returns:
            Created reply
        """
        authorize(actor, Action.CREATE_REPLY)

        async with unit_of_work(self.db):
            await self._get_post_or_404(post_id)

            if parent_id is not None:
                parent = await self.db.get(Reply, parent_id)
                if parent is None or parent.post_id != post_id:
                    logger.warning(
                        f"Ignoring parent {parent_id} for reply on post {post_id}"
                    )
                    parent_id = None

            reply = Reply(
                post_id=post_id,
                author_id=actor.id,
                content=content,
                parent_id=parent_id,
            )
            self.db.add(reply)
            await self.db.flush()

            await counters.increment_post_replies(self.db, post_id)

        return await self.get_reply(reply.id)

    async def update_reply(
        self,
        actor: User | None,
        reply_id: str,
        content: str,
    ) -> Reply:
        """Update reply content. Author, admins and moderators."""
        async with unit_of_work(self.db):
            reply = await self._get_reply_or_404(reply_id)
            authorize(actor, Action.EDIT_REPLY, reply)

            reply.content = content
            reply.updated_at = datetime.utcnow()

        return await self.get_reply(reply_id)

    async def delete_reply(self, actor: User | None, reply_id: str) -> None:
        """
        Delete reply and decrement its post's reply count.

        Replies nested under it are kept and detached.
        """
        async with unit_of_work(self.db):
            reply = await self._get_reply_or_404(reply_id)
            authorize(actor, Action.DELETE_REPLY, reply)
            post_id = reply.post_id

            await self.db.execute(
                update(Reply).where(Reply.parent_id == reply_id).values(parent_id=None)
            )
            result = await self.db.execute(delete(Reply).where(Reply.id == reply_id))
            if result.rowcount != 1:
                raise NotFound("Reply not found")

            await counters.decrement_post_replies(self.db, post_id)

        logger.info(f"Reply {reply_id} deleted by {actor.id}")

    # ==================== Attachments ====================

    async def list_attachments(self, post_id: str) -> list[Attachment]:
        """Get attachments of a post."""
        query = (
            select(Attachment)
            .where(Attachment.post_id == post_id)
            .order_by(Attachment.created_at)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add_attachment(
        self,
        actor: User | None,
        post_id: str,
        stored: StoredFile,
    ) -> Attachment:
        """Attach an already stored file to a post the actor may edit."""
        async with unit_of_work(self.db):
            post = await self._get_post_or_404(post_id)
            authorize(actor, Action.EDIT_POST, post)

            attachment = _attachment_from(post_id, stored)
            self.db.add(attachment)
            await self.db.flush()

        return attachment

    async def delete_attachment(self, actor: User | None, attachment_id: str) -> None:
        """Remove an attachment from a post the actor may edit."""
        async with unit_of_work(self.db):
            attachment = await self.db.get(Attachment, attachment_id)
            if attachment is None:
                raise NotFound("Attachment not found")

            post = await self._get_post_or_404(attachment.post_id)
            authorize(actor, Action.EDIT_POST, post)

            await self.db.execute(delete(Attachment).where(Attachment.id == attachment_id))


def _attachment_from(post_id: str, stored: StoredFile) -> Attachment:
    return Attachment(
        post_id=post_id,
        file_name=stored.file_name,
        file_url=stored.file_url,
        file_type=stored.file_type,
        file_size=stored.file_size,
    )
