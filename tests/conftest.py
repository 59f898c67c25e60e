# Test fixtures and configuration
import os
import tempfile

# Settings are read once at import time, so point them at throwaway locations first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STORAGE_PATH", tempfile.mkdtemp(prefix="tryon-test-"))
os.environ.setdefault("PUBLIC_BASE_URL", "https://store")
os.environ.setdefault("PROVIDER_API_KEY", "test-key")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import Base
from app.models import Outfit  # noqa: F401  registers the table
from app.services.identity import IdentityService
from app.services.provider import TryOnProvider

PROVIDER_URL = "https://provider/v1/try-on"
PROVIDER_RESULT_URL = "https://provider/out.jpg"
RESULT_BYTES = b"\xff\xd8\xff\xe0generated-jpeg"

TOKENS = {
    "alice-token": {"id": "alice", "email": "alice@example.com"},
    "bob-token": {"id": "bob", "email": "bob@example.com"},
}


@pytest.fixture
def session_factory(tmp_path):
    """Session factory over a fresh SQLite file per test."""
    db_path = tmp_path / "ledger.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def identity():
    """Identity service that knows the tokens in TOKENS."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        user = TOKENS.get(token)
        if user is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=user)

    service = IdentityService(
        base_url="https://auth/auth/v1", api_key="anon", transport=httpx.MockTransport(handler)
    )
    service.calls = calls
    return service


class ProviderStub:
    """Records provider traffic and lets a test change the replies."""

    def __init__(self):
        self.generate_calls = []
        self.fetch_calls = []
        self.generate_reply = lambda request: httpx.Response(
            200, json={"result_url": PROVIDER_RESULT_URL}
        )
        self.fetch_reply = lambda request: httpx.Response(200, content=RESULT_BYTES)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and str(request.url) == PROVIDER_URL:
            self.generate_calls.append(request)
            return self.generate_reply(request)
        self.fetch_calls.append(request)
        return self.fetch_reply(request)


@pytest.fixture
def provider_stub():
    return ProviderStub()


@pytest.fixture
def provider(provider_stub):
    return TryOnProvider(
        api_url=PROVIDER_URL,
        api_key="test-key",
        timeout=5,
        fetch_timeout=5,
        transport=httpx.MockTransport(provider_stub),
    )


class MemoryStore:
    """Object store stand-in with `https://store/<key>` public URLs."""

    def __init__(self, fail_on=None):
        self.objects = {}
        self.fail_on = fail_on or (lambda key: False)

    async def upload_image(self, file_data: bytes, key: str, content_type: str = "image/jpeg") -> str:
        if self.fail_on(key):
            raise OSError(f"store refused {key}")
        if key in self.objects:
            raise FileExistsError(key)
        self.objects[key] = file_data
        return key

    def get_public_url(self, key: str) -> str:
        return f"https://store/{key}"


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def minimal_png_bytes():
    """Minimal valid PNG image bytes."""
    return bytes([
        0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A,  # PNG signature
        0x00, 0x00, 0x00, 0x0D, 0x49, 0x48, 0x44, 0x52,  # IHDR chunk
        0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01,  # 1x1 dimensions
        0x08, 0x02, 0x00, 0x00, 0x00, 0x90, 0x77, 0x53,
        0xDE, 0x00, 0x00, 0x00, 0x0C, 0x49, 0x44, 0x41,  # IDAT chunk
        0x54, 0x08, 0xD7, 0x63, 0xF8, 0xCF, 0xC0, 0x00,
        0x00, 0x00, 0x03, 0x00, 0x01, 0x00, 0x05, 0xFE,
        0xD4, 0xAA, 0x00, 0x00, 0x00, 0x00, 0x49, 0x45,  # IEND chunk
        0x4E, 0x44, 0xAE, 0x42, 0x60, 0x82
    ])


@pytest.fixture
def store_factory():
    """Build a MemoryStore that fails for keys matching `fail_on`."""
    return MemoryStore
