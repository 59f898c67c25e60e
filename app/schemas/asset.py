from pydantic import BaseModel, ConfigDict, Field


class AssetReference(BaseModel):
    """An uploaded image: where it lives in the store and how to fetch it."""
    model_config = ConfigDict(frozen=True)

    storage_path: str = Field(..., description="<userId>/<timestamp>[-<index>].<ext>")
    public_url: str


class UploadResponse(BaseModel):
    """Response after uploading one or more images."""
    assets: list[AssetReference]
    message: str = "Images uploaded successfully"
