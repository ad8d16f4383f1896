"""
User Service - identity store and moderation.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.database import unit_of_work
from agora.core.exceptions import NotFound
from agora.models.user import LOCAL_AUTH, User, UserRole
from agora.modules.auth.policy import Action, authorize


class UserService:
    """
    Service for reading and moderating user accounts.

    Usage:
        users = UserService(db_session)
        await users.ban(actor, user_id)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize user service with database session."""
        self.db = db

    # ==================== Lookup ====================

    async def get(self, user_id: str) -> User | None:
        """Get user by ID."""
        query = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        query = select(User).where(User.email == email.strip().lower())
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_users(self, actor: User | None) -> list[User]:
        """Get all users, newest first. Admin only."""
        authorize(actor, Action.LIST_USERS)
        query = select(User).order_by(User.created_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== Creation ====================

    async def create_local_user(
        self,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: UserRole = UserRole.MEMBER,
        email_verified: bool = False,
    ) -> User:
        """Create a password-authenticated account."""
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            auth_type=LOCAL_AUTH,
            role=role,
            email_verified=email_verified,
        )
        async with unit_of_work(self.db):
            self.db.add(user)
            await self.db.flush()
        return user

    # ==================== Moderation ====================

    async def _get_or_404(self, user_id: str) -> User:
        user = await self.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def update_role(self, actor: User | None, user_id: str, role: UserRole) -> User:
        """Change user role. Admin only."""
        authorize(actor, Action.CHANGE_ROLE)
        role = UserRole(role)

        async with unit_of_work(self.db):
            user = await self._get_or_404(user_id)
            user.role = role
            user.updated_at = datetime.utcnow()

        logger.info(f"User {user_id} role set to {role.value} by {actor.id}")
        return user

    async def set_banned(
        self,
        actor: User | None,
        user_id: str,
        banned: bool,
    ) -> User:
        """Ban or unban user. Admins and moderators."""
        authorize(actor, Action.BAN_USER if banned else Action.UNBAN_USER)

        async with unit_of_work(self.db):
            user = await self._get_or_404(user_id)
            user.banned = banned
            user.updated_at = datetime.utcnow()

        logger.info(f"User {user_id} {'banned' if banned else 'unbanned'} by {actor.id}")
        return user

    async def ban(self, actor: User | None, user_id: str) -> User:
        return await self.set_banned(actor, user_id, True)

    async def unban(self, actor: User | None, user_id: str) -> User:
        return await self.set_banned(actor, user_id, False)
