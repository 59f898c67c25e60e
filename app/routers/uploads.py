from fastapi import APIRouter, Depends, UploadFile, File

from app.dependencies import get_current_user, get_upload_orchestrator
from app.errors import BadRequest
from app.schemas.asset import UploadResponse
from app.services.identity import AuthenticatedUser
from app.services.uploads import ImagePayload, UploadOrchestrator

router = APIRouter(prefix="/uploads", tags=["uploads"])

MAX_IMAGES_PER_UPLOAD = 2


@router.post("", response_model=UploadResponse)
async def upload_images(
    images: list[UploadFile] = File(..., description="1-2 images: a profile photo, or person + garment"),
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
):
    """
    Upload images into the caller's namespace.

    One image (e.g. a profile photo) is stored as `<user>/<timestamp>.<ext>`.
    Two images (person + garment from one form) are uploaded concurrently as
    `<user>/<timestamp>-1.<ext>` and `<user>/<timestamp>-2.<ext>`; if either
    fails, the whole request fails.
    """
    if len(images) > MAX_IMAGES_PER_UPLOAD:
        raise BadRequest(f"Maximum {MAX_IMAGES_PER_UPLOAD} images allowed. Got {len(images)}.")

    payloads = []
    for img in images:
        if not img.content_type or not img.content_type.startswith("image/"):
            raise BadRequest(f"File {img.filename} is not an image.")
        payloads.append(
            ImagePayload(
                data=await img.read(),
                filename=img.filename,
                content_type=img.content_type,
            )
        )

    assets = await orchestrator.upload_many(payloads, user.id)
    return UploadResponse(assets=assets)
