"""Error types raised by the try-on pipeline."""

from fastapi import status


class TryOnError(Exception):
    """Base error; carries the HTTP status and the message shown to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Failed to process images"

    def __init__(self, message: str | None = None, details: str | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(TryOnError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No valid authentication token provided"


class InvalidToken(TryOnError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authentication token"


class BadRequest(TryOnError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid JSON in request body"


class MissingImages(TryOnError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Both image URLs are required"


class UploadFailed(TryOnError):
    default_message = "Failed to upload image"

    def __init__(self, index: int, message: str | None = None, details: str | None = None):
        self.index = index
        super().__init__(message or f"Failed to upload image {index}", details)


class ProviderNotConfigured(TryOnError):
    default_message = "Try-on provider API key not configured"


class ProviderError(TryOnError):
    default_message = "Try-on provider failed to generate an image"


class ResultFetchFailed(TryOnError):
    default_message = "Failed to download result image"


class ResultStoreFailed(TryOnError):
    default_message = "Failed to upload result image"


class PersistenceFailed(TryOnError):
    """Ledger write failed. Never leaves the service."""

    default_message = "Failed to save outfit"
