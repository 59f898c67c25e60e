from app.schemas.asset import (
    AssetReference,
    UploadResponse,
)
from app.schemas.tryon import (
    TryonRequest,
    TryonResponse,
    ErrorResponse,
    OutfitInfo,
)

__all__ = [
    "AssetReference",
    "UploadResponse",
    "TryonRequest",
    "TryonResponse",
    "ErrorResponse",
    "OutfitInfo",
]
