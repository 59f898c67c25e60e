import json
import logging
import time
from enum import Enum

from pydantic import ValidationError

from app.errors import (
    BadRequest,
    MissingImages,
    PersistenceFailed,
    ResultStoreFailed,
    TryOnError,
)
from app.logging_conf import log_event
from app.schemas.tryon import TryonRequest, TryonResponse
from app.services.identity import IdentityService, identity_service
from app.services.ledger import OutfitLedger
from app.services.provider import TryOnProvider, tryon_provider
from app.services.storage import LocalStorage, storage

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    VALIDATED = "validated"
    PROVIDER_CALLED = "provider_called"
    RESULT_FETCHED = "result_fetched"
    RESULT_STORED = "result_stored"
    RECORD_PERSISTED = "record_persisted"
    COMPLETED = "completed"
    FAILED = "failed"


def parse_tryon_body(body: bytes) -> TryonRequest:
    """Decode and check the request body, returning both image URLs."""
    if not body or not body.strip():
        raise BadRequest("Missing request body")

    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise BadRequest(details=str(e))

    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")

    try:
        request = TryonRequest.model_validate(data)
    except ValidationError as e:
        raise BadRequest("Invalid request body", details=str(e))

    if not (request.image1 and request.image1.strip()) or not (
        request.image2 and request.image2.strip()
    ):
        raise MissingImages()

    return request


def result_storage_path(caller_id: str, timestamp: int) -> str:
    return f"results/{caller_id}/{timestamp}.jpg"


class TryOnService:
    """
    Runs one try-on invocation end to end.

    authenticate -> validate -> provider -> fetch result -> re-host -> ledger

    Every step before the ledger write is fatal on failure. A failed ledger
    write is logged and counted but the caller still gets the re-hosted URL,
    since the image itself already exists in our storage.
    """

    def __init__(
        self,
        identity: IdentityService | None = None,
        provider: TryOnProvider | None = None,
        store: LocalStorage | None = None,
        clock=None,
    ):
        self.identity = identity or identity_service
        self.provider = provider or tryon_provider
        self.store = store or storage
        self.clock = clock or (lambda: int(time.time() * 1000))
        self.ledger_write_failures = 0

    def _advance(self, stage: Stage, **fields) -> Stage:
        log_event(logger, logging.DEBUG, "TRYON_STAGE", stage.value, **fields)
        return stage

    async def invoke(
        self,
        authorization: str | None,
        body: bytes,
        ledger: OutfitLedger,
    ) -> TryonResponse:
        stage = Stage.RECEIVED
        log_event(logger, logging.INFO, "TRYON_RECEIVED", "try-on requested")

        try:
            user = await self.identity.authenticate(authorization)
            caller_id = user.id
            stage = self._advance(Stage.AUTHENTICATED, user_id=caller_id)

            request = parse_tryon_body(body)
            person_image, garment_image = request.image1, request.image2
            stage = self._advance(Stage.VALIDATED, user_id=caller_id)

            provider_result = await self.provider.generate(person_image, garment_image)
            stage = self._advance(Stage.PROVIDER_CALLED, user_id=caller_id)

            image_bytes = await self.provider.fetch_result(provider_result.result_url)
            stage = self._advance(Stage.RESULT_FETCHED, user_id=caller_id)

            result_key = result_storage_path(caller_id, self.clock())
            try:
                await self.store.upload_image(image_bytes, result_key, content_type="image/jpeg")
            except Exception as e:
                raise ResultStoreFailed(details=str(e)) from e
            stored_result_url = self.store.get_public_url(result_key)
            stage = self._advance(Stage.RESULT_STORED, user_id=caller_id, path=result_key)
        except TryOnError as e:
            failed_at, stage = stage, Stage.FAILED
            log_event(
                logger,
                logging.WARNING if e.status_code < 500 else logging.ERROR,
                "TRYON_FAILED",
                e.message,
                stage=stage.value,
                failed_at=failed_at.value,
                error=type(e).__name__,
            )
            raise

        try:
            await self._persist(caller_id, person_image, garment_image, stored_result_url, ledger)
            stage = self._advance(Stage.RECORD_PERSISTED, user_id=caller_id)
        except PersistenceFailed as e:
            self.ledger_write_failures += 1
            log_event(
                logger, logging.ERROR, "LEDGER_WRITE_FAILED", e.message,
                user_id=caller_id, result=stored_result_url, details=e.details,
            )

        log_event(
            logger, logging.INFO, "TRYON_COMPLETED", "try-on completed",
            user_id=caller_id, result=stored_result_url,
        )
        return TryonResponse(resultImage=stored_result_url)

    async def _persist(
        self,
        caller_id: str,
        person_image: str,
        garment_image: str,
        result_url: str,
        ledger: OutfitLedger,
    ) -> None:
        try:
            await ledger.record(
                user_id=caller_id,
                man_image_path=person_image,
                cloth_image_path=garment_image,
                result_image_path=result_url,
            )
        except Exception as e:
            raise PersistenceFailed(details=str(e)) from e


tryon_service = TryOnService()
