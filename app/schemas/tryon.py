from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class TryonRequest(BaseModel):
    """Body of a try-on invocation. Both fields are image URLs."""
    model_config = ConfigDict(extra="ignore")

    image1: str | None = Field(default=None, description="Person photo URL")
    image2: str | None = Field(default=None, description="Garment photo URL")


class TryonResponse(BaseModel):
    """Response with the re-hosted try-on result."""
    resultImage: str
    message: str = "Images processed and saved successfully"


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class OutfitInfo(BaseModel):
    """A single ledger entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    man_image_path: str
    cloth_image_path: str
    result_image_path: str
    created_at: datetime
