"""
Client for the try-on API.

`TryOnClient.submit` uploads a person photo and a garment photo, then asks
the service to combine them. A `SingleFlightGuard` stops a second submit
while the first is still running (double clicks, impatient retries).
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from app.schemas.asset import AssetReference
from app.schemas.tryon import OutfitInfo, TryonResponse
from app.services.uploads import ImagePayload

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubmissionInFlight(Exception):
    """A previous submission for the same action has not finished yet."""


class TryOnRequestFailed(Exception):
    """The service answered with an error body."""

    def __init__(self, status_code: int, error: str, details: str | None = None):
        self.status_code = status_code
        self.error = error
        self.details = details
        super().__init__(error)


class SingleFlightGuard:
    """In-flight flag for one user action. Rejects, never queues."""

    def __init__(self):
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run(self, action: Callable[[], Awaitable[T]]) -> T:
        if self._in_flight:
            raise SubmissionInFlight("A try-on request is already in progress")

        self._in_flight = True
        try:
            return await action()
        finally:
            self._in_flight = False


class Session:
    def __init__(self, access_token: str, user_id: str):
        self.access_token = access_token
        self.user_id = user_id


SessionListener = Callable[[Session | None], None]


class SessionContext:
    """
    Holds the signed-in session and tells listeners when it changes.

    Views get this object passed in instead of reading a global flag. Call
    `start()` when the owning view mounts and `stop()` when it goes away;
    listeners are only notified between the two.
    """

    def __init__(self, session: Session | None = None):
        self._session = session
        self._listeners: list[SessionListener] = []
        self._active = False

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_signed_in(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        self._active = True
        self._notify()

    def stop(self) -> None:
        self._active = False
        self._listeners.clear()

    def set_session(self, session: Session | None) -> None:
        self._session = session
        self._notify()

    def _notify(self) -> None:
        if not self._active:
            return
        for listener in list(self._listeners):
            listener(self._session)


class TryOnClient:
    def __init__(
        self,
        base_url: str,
        session_context: SessionContext,
        timeout: float = 180.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session_context = session_context
        self.timeout = timeout
        self.guard = SingleFlightGuard()
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        session = self.session_context.session
        if session is None:
            raise TryOnRequestFailed(401, "Not authenticated")
        return {"Authorization": f"Bearer {session.access_token}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        error = data.get("error") or data.get("detail") or response.reason_phrase
        raise TryOnRequestFailed(response.status_code, str(error), data.get("details"))

    async def upload(self, images: list[ImagePayload]) -> list[AssetReference]:
        files = [
            ("images", (image.filename or f"image.{image.extension}", image.data, image.content_type))
            for image in images
        ]
        async with self._client() as client:
            response = await client.post("/api/v1/uploads", files=files, headers=self._headers())
        self._raise_for_error(response)
        return [AssetReference.model_validate(a) for a in response.json()["assets"]]

    async def process(self, person_url: str, garment_url: str) -> TryonResponse:
        async with self._client() as client:
            response = await client.post(
                "/api/v1/process-images",
                json={"image1": person_url, "image2": garment_url},
                headers=self._headers(),
            )
        self._raise_for_error(response)
        return TryonResponse.model_validate(response.json())

    async def list_outfits(self) -> list[OutfitInfo]:
        async with self._client() as client:
            response = await client.get("/api/v1/outfits", headers=self._headers())
        self._raise_for_error(response)
        return [OutfitInfo.model_validate(o) for o in response.json()]

    async def submit(self, person: ImagePayload, garment: ImagePayload) -> TryonResponse:
        """Upload both photos and generate the try-on, one submission at a time."""

        async def action() -> TryonResponse:
            person_ref, garment_ref = await self.upload([person, garment])
            logger.info(f"Uploaded {person_ref.storage_path} and {garment_ref.storage_path}")
            return await self.process(person_ref.public_url, garment_ref.public_url)

        return await self.guard.run(action)
