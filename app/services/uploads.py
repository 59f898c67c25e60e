import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import PurePosixPath

from app.errors import UploadFailed
from app.logging_conf import log_event
from app.schemas.asset import AssetReference
from app.services.storage import LocalStorage, storage

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"


@dataclass
class ImagePayload:
    """Raw image bytes plus what we know about the original file."""
    data: bytes
    filename: str | None = None
    content_type: str = "image/jpeg"

    @property
    def extension(self) -> str:
        if self.filename:
            suffix = PurePosixPath(self.filename).suffix.lstrip(".").lower()
            if suffix:
                return suffix
        return DEFAULT_EXTENSION


def _now_millis() -> int:
    return int(time.time() * 1000)


def build_storage_path(
    caller_id: str, extension: str, timestamp: int, index: int | None = None
) -> str:
    """`<caller_id>/<timestamp>[-<index>].<ext>`"""
    name = f"{timestamp}-{index}" if index is not None else str(timestamp)
    return f"{caller_id}/{name}.{extension}"


class UploadOrchestrator:
    """
    Uploads user images to the object store.

    A single image gets `<caller>/<ts>.<ext>`. Several images uploaded in one
    call share the timestamp and get a 1-based `-<index>` suffix. All uploads
    of a call run concurrently and the call fails as a whole if any of them
    fails.
    """

    def __init__(self, store: LocalStorage | None = None, clock=_now_millis):
        self.store = store or storage
        self.clock = clock

    async def upload_one(
        self,
        image: ImagePayload,
        caller_id: str,
        index: int | None = None,
        timestamp: int | None = None,
    ) -> AssetReference:
        path = build_storage_path(
            caller_id,
            image.extension,
            timestamp if timestamp is not None else self.clock(),
            index,
        )
        try:
            await self.store.upload_image(image.data, path, content_type=image.content_type)
        except Exception as e:
            log_event(
                logger, logging.ERROR, "UPLOAD_FAILED", "object store rejected upload",
                user_id=caller_id, index=index or 1, path=path,
            )
            raise UploadFailed(index=index or 1, details=str(e)) from e

        return AssetReference(storage_path=path, public_url=self.store.get_public_url(path))

    async def upload_many(
        self, images: list[ImagePayload], caller_id: str
    ) -> list[AssetReference]:
        """Upload all images concurrently, returning references in input order."""
        if len(images) == 1:
            return [await self.upload_one(images[0], caller_id)]

        timestamp = self.clock()
        results = await asyncio.gather(
            *(
                self.upload_one(image, caller_id, index=i, timestamp=timestamp)
                for i, image in enumerate(images, start=1)
            ),
            return_exceptions=True,
        )

        # Report the lowest failing index; never hand back a partial set
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)


upload_orchestrator = UploadOrchestrator()
