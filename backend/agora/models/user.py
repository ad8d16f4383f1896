"""
User model for authentication and moderation.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agora.core.database import Base

if TYPE_CHECKING:
    from agora.models.forum import Post, Reply


class UserRole(str, PyEnum):
    """Forum roles, lowest privilege first."""

    MEMBER = "member"
    VIP = "vip"
    MODERATOR = "moderator"
    ADMIN = "admin"


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.MODERATOR})

LOCAL_AUTH = "local"


def generate_user_id() -> str:
    """Opaque, stable user identifier."""
    millis = int(datetime.utcnow().timestamp() * 1000)
    return f"user_{millis}_{uuid4().hex[:9]}"


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_user_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str | None] = mapped_column(String(100))
    password_hash: Mapped[str | None] = mapped_column(String(255))
    auth_type: Mapped[str] = mapped_column(String(20), default=LOCAL_AUTH)

    # Profile
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    avatar: Mapped[str | None] = mapped_column(String(500))
    profile_image_url: Mapped[str | None] = mapped_column(String(500))
    bio: Mapped[str | None] = mapped_column(Text)

    # Status
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        default=UserRole.MEMBER,
    )
    banned: Mapped[bool] = mapped_column(Boolean, default=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    posts: Mapped[list["Post"]] = relationship(
        back_populates="author", cascade="all, delete-orphan", passive_deletes=True
    )
    replies: Mapped[list["Reply"]] = relationship(
        back_populates="author", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def display_name(self) -> str:
        """Name shown next to content."""
        if self.username:
            return self.username
        full_name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full_name or self.email.split("@", 1)[0]

    def __repr__(self) -> str:
        return f"<User {self.email}>"
