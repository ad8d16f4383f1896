"""
API Router.

Combines all endpoints under the /api prefix.
"""

from fastapi import APIRouter

from agora.api.endpoints import auth, forums, posts, upload, users

router = APIRouter()

# Include endpoint routers
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(forums.router, prefix="/forums", tags=["Forums"])
router.include_router(posts.router, tags=["Posts"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(upload.router, prefix="/upload", tags=["Uploads"])
