"""
Shared fixtures.

Every test gets its own SQLite database file and upload directory. The
app lifespan runs for real, so tables exist and the default admin is
seeded before the test body starts.
"""

from typing import Any, AsyncGenerator, Awaitable, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.config import Settings
from agora.main import create_app
from agora.models.user import User, UserRole
from agora.modules.users.service import UserService

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-secret"
BASE_URL = "http://forum.test"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway database and upload directory."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'agora.db'}",
        session_backend="database",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_size_mb=1,
        max_attachments_per_post=5,
        bcrypt_rounds=4,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    """Application with its lifespan running."""
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def make_client(app: FastAPI) -> AsyncGenerator[Callable[[], AsyncClient], None]:
    """Factory for independent clients, each with its own cookie jar."""
    clients: list[AsyncClient] = []

    def factory() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


@pytest.fixture
def client(make_client: Callable[[], AsyncClient]) -> AsyncClient:
    """Anonymous client."""
    return make_client()


@pytest.fixture
async def admin_client(make_client: Callable[[], AsyncClient]) -> AsyncClient:
    """Client logged in as the seeded admin."""
    client = make_client()
    response = await client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return client


@pytest.fixture
def register(
    make_client: Callable[[], AsyncClient],
) -> Callable[..., Awaitable[tuple[AsyncClient, dict[str, Any]]]]:
    """Register a new member; returns its logged-in client and user JSON."""

    async def _register(
        email: str,
        password: str = "password123",
        first_name: str = "Test",
        last_name: str = "User",
    ) -> tuple[AsyncClient, dict[str, Any]]:
        client = make_client()
        response = await client.post(
            "/api/auth/register",
            json={
                "email": email,
                "password": password,
                "firstName": first_name,
                "lastName": last_name,
            },
        )
        assert response.status_code == 201, response.text
        return client, response.json()["user"]

    return _register


@pytest.fixture
async def db(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Database session for service-level tests."""
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
async def admin(db: AsyncSession) -> User:
    user = await UserService(db).get_by_email(ADMIN_EMAIL)
    assert user is not None
    return user


@pytest.fixture
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Create a user directly through the service layer."""

    async def _make_user(email: str, role: UserRole = UserRole.MEMBER) -> User:
        return await UserService(db).create_local_user(
            email=email,
            password_hash="not-a-real-hash",
            first_name="Test",
            last_name="User",
            role=role,
        )

    return _make_user


@pytest.fixture
async def member(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("member@example.com")


@pytest.fixture
async def moderator(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("moderator@example.com", UserRole.MODERATOR)
