import aiofiles
from pathlib import Path

from app.config import get_settings

settings = get_settings()


class LocalStorage:
    """
    Local file storage for images, laid out as one directory per bucket.
    Files are served by the /files static mount, so every stored key has a
    stable public URL.
    """

    def __init__(
        self,
        base_path: Path | None = None,
        bucket: str | None = None,
        public_base_url: str | None = None,
    ):
        self.base_path = Path(base_path or settings.storage_path)
        self.bucket = bucket or settings.storage_bucket
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        self._ensure_base_path()

    def _ensure_base_path(self) -> None:
        """Ensure the bucket directory exists."""
        (self.base_path / self.bucket).mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Get the full filesystem path for a storage key."""
        full_path = (self.base_path / self.bucket / key).resolve()
        bucket_root = (self.base_path / self.bucket).resolve()
        if bucket_root not in full_path.parents:
            raise ValueError(f"Storage key escapes bucket: {key}")
        return full_path

    async def upload_image(
        self,
        file_data: bytes,
        key: str,
        content_type: str = "image/jpeg"
    ) -> str:
        """
        Save an image and return the key.

        Uploads are append-only: an existing key is never overwritten.
        """
        full_path = self._get_full_path(key)

        # Ensure parent directories exist
        full_path.parent.mkdir(parents=True, exist_ok=True)

        # "xb" fails if the file already exists
        async with aiofiles.open(full_path, "xb") as f:
            await f.write(file_data)

        return key

    def get_public_url(self, key: str) -> str:
        """Public URL for a stored key."""
        return f"{self.public_base_url}/files/{self.bucket}/{key}"

    async def ensure_storage_exists(self) -> None:
        """Ensure storage is ready (create directories)."""
        self._ensure_base_path()
        (self.base_path / self.bucket / "results").mkdir(exist_ok=True)


# Singleton instance
storage = LocalStorage()
