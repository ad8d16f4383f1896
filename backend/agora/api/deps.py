"""
Request-scoped dependencies.

Engine, session store and upload storage are created once in the app
lifespan and kept on ``app.state``; handlers receive them through
``Depends`` instead of importing module-level singletons.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.config import Settings
from agora.core.exceptions import Unauthenticated
from agora.models.user import User
from agora.modules.auth.sessions import Identity, SessionResolver, SessionStore
from agora.modules.uploads.storage import UploadStorage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one request."""
    async with request.app.state.session_factory() as session:
        yield session


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_upload_storage(request: Request) -> UploadStorage:
    return request.app.state.upload_storage


def get_session_id(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


async def get_identity(
    session_id: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Resolve the session cookie to a user or anonymous."""
    return await SessionResolver(store, db).resolve(session_id)


async def get_current_user(identity: Identity = Depends(get_identity)) -> User:
    """Require an authenticated, non-banned user."""
    if identity.user is None:
        raise Unauthenticated()
    return identity.user
