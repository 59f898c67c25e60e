from fastapi import APIRouter, Depends, Header, Request, Response, status

from app.dependencies import get_ledger, get_tryon_service
from app.schemas.tryon import ErrorResponse, TryonResponse
from app.services.ledger import OutfitLedger
from app.services.tryon import TryOnService

router = APIRouter(tags=["virtual-tryon"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Max-Age": "86400",
}


@router.options("/process-images", status_code=status.HTTP_204_NO_CONTENT)
async def process_images_preflight():
    """CORS pre-flight for the try-on endpoint."""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


@router.post(
    "/process-images",
    response_model=TryonResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def process_images(
    request: Request,
    response: Response,
    authorization: str | None = Header(default=None),
    service: TryOnService = Depends(get_tryon_service),
    ledger: OutfitLedger = Depends(get_ledger),
):
    """
    Virtual Try-On: put the garment from `image2` on the person in `image1`.

    **Body:** `{"image1": "<person photo URL>", "image2": "<garment photo URL>"}`

    **How it works:**
    1. Verifies the bearer token; the caller id comes from the token only
    2. Sends both image URLs to the try-on provider
    3. Downloads the generated image and stores our own copy under `results/<user>/`
    4. Records the outfit once per (user, person photo, garment photo)

    The body is read raw so that malformed JSON is reported as a 400 with the
    parse error, rather than a validation error.
    """
    body = await request.body()
    result = await service.invoke(authorization, body, ledger)
    response.headers.update(CORS_HEADERS)
    return result
