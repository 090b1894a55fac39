"""
Image upload route.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status

from vendorhive.api.dependencies import get_current_user, get_media_service
from vendorhive.api.middleware.error_handler import BadRequestException
from vendorhive.schemas import CamelModel, User
from vendorhive.services.media_service import MAX_IMAGE_BYTES, MediaService


class UploadResponse(CamelModel):
    image_url: str


router = APIRouter(prefix="/api/upload", tags=["Upload"])


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_image(
    image: Optional[UploadFile] = File(None, description="jpg, jpeg, png or gif"),
    user: User = Depends(get_current_user),
    media: MediaService = Depends(get_media_service),
):
    """Upload an image to object storage and return its public URL."""
    if image is None:
        raise BadRequestException("No file uploaded")

    # One byte past the limit is enough to reject an oversized file
    data = image.file.read(MAX_IMAGE_BYTES + 1)
    return {"image_url": media.upload_image(image.filename, image.content_type, data)}
