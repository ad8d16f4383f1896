"""
Agora Forum Backend Application.

FastAPI application for a discussion forum with local accounts,
moderation and image attachments.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from agora.api import router as api_router
from agora.api.serializers import field_errors
from agora.core.config import Settings, get_settings
from agora.core.database import close_db, create_engine, create_session_factory, init_db
from agora.core.exceptions import AgoraError, Internal, ValidationError
from agora.modules.auth.service import AuthService
from agora.modules.auth.sessions import DatabaseSessionStore, RedisSessionStore, SessionStore
from agora.modules.uploads.storage import UploadStorage


def _create_session_store(app: FastAPI, settings: Settings) -> SessionStore:
    if settings.session_backend == "redis":
        logger.info("Using Redis session store")
        return RedisSessionStore.from_url(settings.redis_url, settings.session_ttl_seconds)
    return DatabaseSessionStore(app.state.session_factory, settings.session_ttl_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name}...")

    # Initialize database
    engine = create_engine(settings)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    await init_db(engine)
    logger.info("Database initialized")

    # Sessions
    store = _create_session_store(app, settings)
    app.state.session_store = store
    if isinstance(store, DatabaseSessionStore):
        purged = await store.purge_expired()
        if purged:
            logger.info(f"Purged {purged} expired sessions")

    # Upload directory
    app.state.upload_storage.ensure_root()

    # Default administrator
    async with app.state.session_factory() as db:
        await AuthService(db, store, settings).ensure_admin()

    logger.info(f"{settings.app_name} started successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await store.close()
    await close_db(engine)
    logger.info("Shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto JSON responses."""

    @app.exception_handler(AgoraError)
    async def agora_error_handler(request: Request, exc: AgoraError) -> ORJSONResponse:
        return ORJSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        error = ValidationError(errors=field_errors(list(exc.errors())))
        return ORJSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
        logger.exception(f"Database error on {request.method} {request.url.path}")
        error = Internal()
        return ORJSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        error = Internal()
        return ORJSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
        Agora Forum Backend

        ## Features

        - **Accounts**: Local email/password login with cookie sessions
        - **Forums**: Sections, posts with image attachments, replies
        - **Moderation**: Roles, bans, forum administration
        - **Search**: Substring search over post titles and content
        """,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    upload_storage = UploadStorage(settings)
    app.state.upload_storage = upload_storage

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    # Uploaded images
    app.mount(
        settings.upload_url_prefix,
        StaticFiles(directory=upload_storage.root, check_dir=False),
        name="uploads",
    )

    @app.get("/health", tags=["System"])
    async def health_check() -> dict:
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "version": settings.app_version,
        }

    @app.get("/", tags=["System"])
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "api": settings.api_prefix,
        }

    return app


app = create_app()
