"""API endpoint tests using FastAPI TestClient."""

import itertools

import httpx
import pytest
from fastapi.testclient import TestClient

from app.database import get_db
from app.dependencies import (
    get_identity_service,
    get_tryon_service,
    get_upload_orchestrator,
)
from app.main import app
from app.services.tryon import TryOnService
from app.services.uploads import UploadOrchestrator

PERSON = "https://store/alice/1.jpg"
GARMENT = "https://store/alice/2.jpg"
ALICE = {"Authorization": "Bearer alice-token"}


@pytest.fixture
def tryon_service(identity, provider, memory_store):
    return TryOnService(identity=identity, provider=provider, store=memory_store, clock=itertools.count(999).__next__)


@pytest.fixture
def client(session_factory, identity, tryon_service, memory_store):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_identity_service] = lambda: identity
    app.dependency_overrides[get_tryon_service] = lambda: tryon_service
    app.dependency_overrides[get_upload_orchestrator] = lambda: UploadOrchestrator(
        store=memory_store, clock=lambda: 1700000000000
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "process_images" in response.json()["endpoints"]

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "ledger_write_failures" in data


class TestProcessImages:

    def test_success(self, client, provider_stub):
        response = client.post(
            "/api/v1/process-images", json={"image1": PERSON, "image2": GARMENT}, headers=ALICE
        )

        assert response.status_code == 200
        assert response.json() == {
            "resultImage": "https://store/results/alice/999.jpg",
            "message": "Images processed and saved successfully",
        }
        assert response.headers["access-control-allow-origin"] == "*"
        assert len(provider_stub.generate_calls) == 1

    def test_outfit_shows_up_in_history(self, client):
        client.post("/api/v1/process-images", json={"image1": PERSON, "image2": GARMENT}, headers=ALICE)
        client.post("/api/v1/process-images", json={"image1": PERSON, "image2": GARMENT}, headers=ALICE)

        response = client.get("/api/v1/outfits", headers=ALICE)

        assert response.status_code == 200
        outfits = response.json()
        assert len(outfits) == 1
        assert outfits[0]["user_id"] == "alice"
        assert outfits[0]["man_image_path"] == PERSON
        assert outfits[0]["cloth_image_path"] == GARMENT

    def test_missing_token(self, client, provider_stub):
        response = client.post("/api/v1/process-images", json={"image1": PERSON, "image2": GARMENT})

        assert response.status_code == 401
        assert response.json() == {"error": "No valid authentication token provided"}
        assert provider_stub.generate_calls == []

    def test_invalid_token(self, client):
        response = client.post(
            "/api/v1/process-images",
            json={"image1": PERSON, "image2": GARMENT},
            headers={"Authorization": "Bearer forged"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid authentication token"

    def test_malformed_json(self, client):
        response = client.post(
            "/api/v1/process-images",
            content=b"{not json",
            headers={**ALICE, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid JSON in request body"
        assert data["details"]

    def test_missing_image(self, client, provider_stub):
        response = client.post(
            "/api/v1/process-images", json={"image1": PERSON, "image2": ""}, headers=ALICE
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Both image URLs are required"}
        assert provider_stub.generate_calls == []

    def test_provider_failure_is_500(self, client, provider_stub):
        provider_stub.generate_reply = lambda request: httpx.Response(500, json={"error": "model crashed"})

        response = client.post(
            "/api/v1/process-images", json={"image1": PERSON, "image2": GARMENT}, headers=ALICE
        )

        assert response.status_code == 500
        assert "model crashed" in response.json()["error"]

    def test_preflight(self, client):
        response = client.options("/api/v1/process-images")

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
        assert response.headers["access-control-max-age"] == "86400"


    def test_browser_preflight(self, client):
        response = client.options(
            "/api/v1/process-images",
            headers={
                "Origin": "https://app.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert response.headers["access-control-max-age"] == "86400"

    def test_unexpected_error_keeps_cors_headers(self, session_factory, identity):
        class BrokenService:
            async def invoke(self, authorization, body, ledger):
                raise RuntimeError("boom")

        async def override_db():
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_tryon_service] = lambda: BrokenService()
        try:
            client = TestClient(app, raise_server_exceptions=False)
            response = client.post(
                "/api/v1/process-images", json={"image1": PERSON, "image2": GARMENT}, headers=ALICE
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert response.headers["access-control-allow-origin"] == "*"


class TestUploads:

    def test_pair_upload(self, client, memory_store, minimal_png_bytes):
        response = client.post(
            "/api/v1/uploads",
            files=[
                ("images", ("me.jpg", b"\xff\xd8person", "image/jpeg")),
                ("images", ("shirt.png", minimal_png_bytes, "image/png")),
            ],
            headers=ALICE,
        )

        assert response.status_code == 200
        assets = response.json()["assets"]
        assert [a["storage_path"] for a in assets] == [
            "alice/1700000000000-1.jpg",
            "alice/1700000000000-2.png",
        ]
        assert assets[0]["public_url"] == "https://store/alice/1700000000000-1.jpg"
        assert memory_store.objects["alice/1700000000000-2.png"] == minimal_png_bytes

    def test_profile_photo_upload(self, client, minimal_png_bytes):
        response = client.post(
            "/api/v1/uploads",
            files=[("images", ("me.png", minimal_png_bytes, "image/png"))],
            headers=ALICE,
        )

        assert response.status_code == 200
        assert response.json()["assets"][0]["storage_path"] == "alice/1700000000000.png"

    def test_upload_requires_auth(self, client, minimal_png_bytes):
        response = client.post(
            "/api/v1/uploads",
            files=[("images", ("me.png", minimal_png_bytes, "image/png"))],
        )

        assert response.status_code == 401

    def test_rejects_non_image(self, client):
        response = client.post(
            "/api/v1/uploads",
            files=[("images", ("notes.txt", b"hello", "text/plain"))],
            headers=ALICE,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "File notes.txt is not an image."}

    def test_rejects_more_than_two_images(self, client, memory_store, minimal_png_bytes):
        response = client.post(
            "/api/v1/uploads",
            files=[("images", (f"{i}.png", minimal_png_bytes, "image/png")) for i in range(3)],
            headers=ALICE,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Maximum 2 images allowed. Got 3."}
        assert response.headers["access-control-allow-origin"] == "*"
        assert memory_store.objects == {}

    def test_failed_upload_reports_index(self, client, memory_store, minimal_png_bytes):
        memory_store.fail_on = lambda key: key.endswith("-2.png")

        response = client.post(
            "/api/v1/uploads",
            files=[
                ("images", ("me.png", minimal_png_bytes, "image/png")),
                ("images", ("shirt.png", minimal_png_bytes, "image/png")),
            ],
            headers=ALICE,
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to upload image 2"


def test_outfits_require_auth(client):
    response = client.get("/api/v1/outfits")

    assert response.status_code == 401
