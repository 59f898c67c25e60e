import logging
from dataclasses import dataclass

import httpx

from app.config import get_settings
from app.errors import ProviderError, ProviderNotConfigured, ResultFetchFailed

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResult:
    """A successful provider reply, validated."""
    result_url: str


def _provider_message(response: httpx.Response) -> str:
    """Best-effort error text from a provider reply."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for field in ("error", "message", "detail"):
            value = data.get(field)
            if isinstance(value, dict):
                value = value.get("message")
            if value:
                return str(value)

    return response.reason_phrase or f"HTTP {response.status_code}"


def _is_fetchable_url(url: str) -> bool:
    """An absolute http(s) URL with a host."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


class TryOnProvider:
    """
    Client for the external try-on provider.

    The provider takes a person image URL and a garment image URL and answers
    with `{"result_url": ...}`. The result URL is not durable, so callers
    fetch it right away with `fetch_result`.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        fetch_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url or settings.provider_api_url
        self.api_key = api_key if api_key is not None else settings.provider_api_key
        self.timeout = timeout or settings.provider_timeout_seconds
        self.fetch_timeout = fetch_timeout or settings.result_fetch_timeout_seconds
        self._transport = transport

    async def generate(self, person_image_url: str, garment_image_url: str) -> ProviderResult:
        """
        Ask the provider for a try-on image. Single attempt, no retry.

        Raises:
            ProviderNotConfigured: no API key is set
            ProviderError: non-2xx reply, timeout, transport error, or no result_url
        """
        if not self.api_key:
            raise ProviderNotConfigured()

        payload = {
            "person_image_url": person_image_url,
            "garment_image_url": garment_image_url,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                        "X-API-KEY": self.api_key,
                    },
                )
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"Try-on provider timed out after {self.timeout:g}s", details=str(e)
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Try-on provider unreachable: {e}")
        except (httpx.InvalidURL, ValueError) as e:
            raise ProviderError(f"Invalid try-on provider URL: {self.api_url}", details=str(e))

        if not response.is_success:
            message = _provider_message(response)
            logger.warning(f"Provider rejected request ({response.status_code}): {message}")
            raise ProviderError(f"Try-on provider error: {message}")

        try:
            data = response.json()
        except ValueError:
            raise ProviderError("Try-on provider returned a non-JSON response")

        result_url = data.get("result_url") if isinstance(data, dict) else None
        if not isinstance(result_url, str) or not result_url:
            raise ProviderError("No result image URL received from try-on provider")
        if not _is_fetchable_url(result_url):
            raise ProviderError(
                "Try-on provider returned an invalid result image URL", details=result_url
            )

        return ProviderResult(result_url=result_url)

    async def fetch_result(self, result_url: str) -> bytes:
        """Download the generated image from the provider's result URL."""
        if not _is_fetchable_url(result_url):
            raise ResultFetchFailed(f"Invalid result image URL: {result_url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.fetch_timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(result_url)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ResultFetchFailed(
                f"Timed out downloading result image after {self.fetch_timeout:g}s",
                details=str(e),
            )
        except httpx.HTTPError as e:
            raise ResultFetchFailed(details=str(e))
        except (httpx.InvalidURL, ValueError) as e:
            raise ResultFetchFailed(f"Invalid result image URL: {result_url}", details=str(e))

        if not response.content:
            raise ResultFetchFailed(details="Result image is empty")

        return response.content


tryon_provider = TryOnProvider()
