"""
Session storage and request identity resolution.

Two interchangeable stores keep ``session id -> (user id, auth type)``:

- DatabaseSessionStore: ``sessions`` table, default
- RedisSessionStore: ``session:<sid>`` keys with TTL

SessionResolver turns a cookie value into an Identity.
"""

import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

import redis.asyncio as redis
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agora.models.session import UserSession
from agora.models.user import LOCAL_AUTH, User


@dataclass(frozen=True)
class SessionData:
    """What a session id points to."""

    user_id: str | None
    auth_type: str | None


@dataclass(frozen=True)
class Identity:
    """Request actor: a user, or anonymous when user is None."""

    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


ANONYMOUS = Identity()


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    """Persistence for login sessions."""

    async def create(self, user_id: str, auth_type: str = LOCAL_AUTH) -> str: ...

    async def get(self, session_id: str) -> SessionData | None: ...

    async def destroy(self, session_id: str) -> None: ...

    async def close(self) -> None: ...


class DatabaseSessionStore:
    """
    Session store backed by the ``sessions`` table.

    Uses its own database sessions so session writes never ride on a
    request's content transaction.

    Usage:
        store = DatabaseSessionStore(session_factory, ttl_seconds=604800)
        sid = await store.create(user.id)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl_seconds: int,
    ) -> None:
        self._session_factory = session_factory
        self.ttl = timedelta(seconds=ttl_seconds)

    async def create(self, user_id: str, auth_type: str = LOCAL_AUTH) -> str:
        """Issue a new session for user."""
        sid = new_session_id()
        async with self._session_factory() as db:
            db.add(
                UserSession(
                    sid=sid,
                    user_id=user_id,
                    auth_type=auth_type,
                    expires_at=datetime.utcnow() + self.ttl,
                )
            )
            await db.commit()
        return sid

    async def get(self, session_id: str) -> SessionData | None:
        """Get live session data, None if missing or expired."""
        async with self._session_factory() as db:
            row = await db.get(UserSession, session_id)
            if row is None:
                return None
            if row.expires_at <= datetime.utcnow():
                await db.delete(row)
                await db.commit()
                return None
            return SessionData(user_id=row.user_id, auth_type=row.auth_type)

    async def destroy(self, session_id: str) -> None:
        async with self._session_factory() as db:
            await db.execute(delete(UserSession).where(UserSession.sid == session_id))
            await db.commit()

    async def purge_expired(self) -> int:
        """Delete expired sessions. Returns number removed."""
        async with self._session_factory() as db:
            result = await db.execute(
                delete(UserSession).where(UserSession.expires_at <= datetime.utcnow())
            )
            await db.commit()
        return result.rowcount or 0

    async def close(self) -> None:
        return None


class RedisSessionStore:
    """
    Session store using Redis with TTL for automatic expiration.

    Usage:
        store = RedisSessionStore(redis.from_url(url, decode_responses=True), ttl)
        sid = await store.create(user.id)
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int) -> None:
        self._redis = client
        self.ttl = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "RedisSessionStore":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, ttl_seconds)

    def _key(self, session_id: str) -> str:
        return f"session:{session_id}"

    async def create(self, user_id: str, auth_type: str = LOCAL_AUTH) -> str:
        sid = new_session_id()
        payload = json.dumps({"userId": user_id, "authType": auth_type})
        await self._redis.setex(self._key(sid), self.ttl, payload)
        return sid

    async def get(self, session_id: str) -> SessionData | None:
        raw = await self._redis.get(self._key(session_id))
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid session payload for {session_id[:8]}")
            return None

        return SessionData(user_id=data.get("userId"), auth_type=data.get("authType"))

    async def destroy(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))

    async def close(self) -> None:
        await self._redis.aclose()


class SessionResolver:
    """
    Maps a session cookie to an Identity.

    A session resolves to a user only when the store knows the id, it
    names a user, its auth type is local, the user still exists and the
    user is not banned. Anything else is anonymous.
    """

    def __init__(self, store: SessionStore, db: AsyncSession) -> None:
        self.store = store
        self.db = db

    async def resolve(self, session_id: str | None) -> Identity:
        if not session_id:
            return ANONYMOUS

        data = await self.store.get(session_id)
        if data is None or not data.user_id or data.auth_type != LOCAL_AUTH:
            return ANONYMOUS

        result = await self.db.execute(select(User).where(User.id == data.user_id))
        user = result.scalar_one_or_none()
        if user is None or user.banned:
            return ANONYMOUS

        return Identity(user=user)
