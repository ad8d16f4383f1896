"""
Upload Endpoint.

Stores a single image for use in post content.
"""

from fastapi import APIRouter, Depends, File, UploadFile

from agora.api.deps import get_current_user, get_upload_storage
from agora.models.user import User
from agora.modules.auth.policy import Action, authorize
from agora.modules.uploads.storage import UploadStorage

router = APIRouter()


@router.post("")
async def upload_image(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    storage: UploadStorage = Depends(get_upload_storage),
) -> dict[str, str | int]:
    """Upload one image (max ``max_upload_size_mb``)."""
    authorize(user, Action.UPLOAD_FILE)
    admitted = await storage.admit(image, field="image")
    stored = await storage.save(admitted)
    return stored.to_dict()
