"""
User Administration Endpoints.

Listing, role changes and bans.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import get_current_user, get_db
from agora.api.serializers import CamelModel, user_admin_view
from agora.models.user import User, UserRole
from agora.modules.users.service import UserService

router = APIRouter()


class UpdateRoleRequest(CamelModel):
    """New role for a user."""

    role: UserRole


@router.get("")
async def list_users(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get all users. Admin only."""
    users = UserService(db)
    return [user_admin_view(u) for u in await users.list_users(user)]


@router.patch("/{user_id}/role")
async def update_role(
    user_id: str,
    request: UpdateRoleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Change user role. Admin only."""
    users = UserService(db)
    await users.update_role(user, user_id, request.role)
    return {"message": "Role updated successfully"}


@router.patch("/{user_id}/ban")
async def ban_user(
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Ban user. Admins and moderators."""
    users = UserService(db)
    await users.ban(user, user_id)
    return {"message": "User banned successfully"}


@router.patch("/{user_id}/unban")
async def unban_user(
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Lift a ban. Admins and moderators."""
    users = UserService(db)
    await users.unban(user, user_id)
    return {"message": "User unbanned successfully"}
