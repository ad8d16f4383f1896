"""
Auth Service - local email/password registration and login.
"""

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.config import Settings
from agora.core.exceptions import Conflict, Forbidden, Unauthenticated
from agora.models.user import LOCAL_AUTH, User, UserRole
from agora.modules.auth.passwords import hash_password, verify_password
from agora.modules.auth.sessions import SessionStore
from agora.modules.users.service import UserService


class AuthService:
    """
    Resolves credentials to an identity and issues sessions.

    Usage:
        auth = AuthService(db_session, session_store, settings)
        user, session_id = await auth.login(email, password)
    """

    def __init__(
        self,
        db: AsyncSession,
        store: SessionStore,
        settings: Settings,
    ) -> None:
        self.db = db
        self.store = store
        self.settings = settings
        self.users = UserService(db)

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> tuple[User, str]:
        """
        Create a member account and log it in.

        Returns:
            (user, session id)

        Raises:
            Conflict: email already registered
        """
        if await self.users.get_by_email(email):
            raise Conflict("Email already in use")

        password_hash = await hash_password(password, self.settings.bcrypt_rounds)
        try:
            user = await self.users.create_local_user(
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
            )
        except IntegrityError:
            # Lost a race with a concurrent registration
            raise Conflict("Email already in use")

        session_id = await self.store.create(user.id, LOCAL_AUTH)
        logger.info(f"Registered user {user.id}")
        return user, session_id

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            Unauthenticated: unknown email, non-local account, wrong password
            Forbidden: account is banned
        """
        user = await self.users.get_by_email(email)
        if user is None:
            raise Unauthenticated("Invalid email or password")

        if user.auth_type != LOCAL_AUTH or not user.password_hash:
            raise Unauthenticated("This account does not support password login")

        if not await verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid email or password")

        if user.banned:
            raise Forbidden("Your account has been suspended")

        return user

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """Authenticate and issue a session."""
        user = await self.authenticate(email, password)
        session_id = await self.store.create(user.id, LOCAL_AUTH)
        logger.info(f"User {user.id} logged in")
        return user, session_id

    async def logout(self, session_id: str | None) -> None:
        if session_id:
            await self.store.destroy(session_id)
            logger.info(f"Session {session_id[:8]} logged out")

    async def ensure_admin(self) -> User | None:
        """
        Create the configured default admin if it does not exist yet.

        Returns:
            The admin user, or None when no admin is configured
        """
        email = self.settings.admin_email
        password = self.settings.admin_password
        if not email or not password:
            return None

        existing = await self.users.get_by_email(email)
        if existing:
            logger.info(f"Admin user {existing.email} already exists")
            return existing

        admin = await self.users.create_local_user(
            email=email,
            password_hash=await hash_password(password, self.settings.bcrypt_rounds),
            first_name=self.settings.admin_first_name,
            last_name=self.settings.admin_last_name,
            role=UserRole.ADMIN,
            email_verified=True,
        )
        logger.info(f"Created admin user {admin.email}")
        return admin
