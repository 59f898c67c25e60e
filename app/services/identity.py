import logging
from dataclasses import dataclass

import httpx

from app.config import get_settings
from app.errors import InvalidToken, Unauthenticated

settings = get_settings()
logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller as reported by the identity service."""
    id: str
    email: str | None = None


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated()

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token or " " in token:
        raise Unauthenticated()
    return token


class IdentityService:
    """
    Client for the identity service's `GET /user` endpoint.

    A token is valid only if the service answers 2xx with a user object that
    has a non-empty `id`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.auth_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.auth_api_key
        self.timeout = timeout or settings.auth_timeout_seconds
        self._transport = transport

    async def verify(self, token: str) -> AuthenticatedUser:
        headers = {"Authorization": f"{BEARER_PREFIX}{token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(f"{self.base_url}/user", headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Identity service unreachable: {e}")
            raise InvalidToken(details=str(e))

        if not response.is_success:
            raise InvalidToken()

        try:
            data = response.json()
        except ValueError:
            raise InvalidToken(details="Identity service returned a non-JSON body")

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise InvalidToken()

        return AuthenticatedUser(id=str(user_id), email=data.get("email"))

    async def authenticate(self, authorization: str | None) -> AuthenticatedUser:
        """Header in, verified user out."""
        return await self.verify(extract_bearer_token(authorization))


identity_service = IdentityService()
