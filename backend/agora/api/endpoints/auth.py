"""
Auth API Endpoints.

Local email/password accounts with cookie sessions.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import (
    get_app_settings,
    get_current_user,
    get_db,
    get_session_id,
    get_session_store,
)
from agora.api.serializers import CamelModel, user_profile, user_summary
from agora.core.config import Settings
from agora.models.user import User
from agora.modules.auth.service import AuthService
from agora.modules.auth.sessions import SessionStore

router = APIRouter()


# ==================== Schemas ====================


class RegisterRequest(CamelModel):
    """Create local account."""

    email: EmailStr
    password: str = Field(min_length=6, description="At least 6 characters")
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)


class LoginRequest(CamelModel):
    """Log in with email and password."""

    email: EmailStr
    password: str


def _set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


# ==================== Routes ====================


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Register a member account and start a session."""
    auth = AuthService(db, store, settings)
    user, session_id = await auth.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    _set_session_cookie(response, session_id, settings)

    return {"message": "Account created successfully", "user": user_summary(user)}


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """
    Log in with email and password.

    Returns 401 on bad credentials and 403 for suspended accounts.
    """
    auth = AuthService(db, store, settings)
    user, session_id = await auth.login(request.email, request.password)
    _set_session_cookie(response, session_id, settings)

    return {"message": "Logged in successfully", "user": user_summary(user)}


@router.post("/logout")
async def logout(
    response: Response,
    session_id: str | None = Depends(get_session_id),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, str]:
    """Destroy the current session and clear its cookie."""
    auth = AuthService(db, store, settings)
    await auth.logout(session_id)
    response.delete_cookie(settings.session_cookie_name)

    return {"message": "Logged out successfully"}


@router.get("/user")
async def current_user(user: User = Depends(get_current_user)) -> dict[str, Any]:
    """Get the logged-in user's profile."""
    return user_profile(user)
