import pytest
from fastapi.testclient import TestClient

from conftest import PNG_BYTES, VIDEO_BYTES, FakeGenerator
from veo_generator.api.routes import get_blob_store, get_session
from veo_generator.app import app
from veo_generator.config import settings
from veo_generator.services.blob_store import BlobStore
from veo_generator.services.video_service import DownloadError
from veo_generator.ui.session import GenerationSession
from veo_generator.ui.ticker import LOADING_MESSAGES, StatusTicker


class Harness:
    def __init__(self, error=None, inline=True):
        self.blob_store = BlobStore()
        self.generator = FakeGenerator(self.blob_store, error=error)
        self.pending = []
        runner = (lambda task: task()) if inline else self.pending.append
        self.session = GenerationSession(
            self.generator,
            self.blob_store,
            ticker=StatusTicker(interval=3600),
            run_in_background=runner,
        )


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def client(harness):
    app.dependency_overrides[get_session] = lambda: harness.session
    app.dependency_overrides[get_blob_store] = lambda: harness.blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_index_page_is_served(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "Veo Video Generator" in response.text


def test_initial_session_state(client):
    body = client.get("/api/session").json()

    assert body == {
        "state": "idle",
        "prompt": "",
        "status_message": None,
        "error": None,
        "video_url": None,
        "image_preview_url": None,
        "can_submit": False,
    }


def test_update_prompt_enables_submit(client):
    body = client.put("/api/session/prompt", json={"prompt": "A fox in the snow"}).json()

    assert body["prompt"] == "A fox in the snow"
    assert body["can_submit"] is True


def test_blank_prompt_is_rejected(client, harness):
    response = client.post("/api/session/generate", json={"prompt": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a prompt."
    assert harness.generator.calls == []


def test_generate_and_fetch_video(client, harness):
    response = client.post("/api/session/generate", json={"prompt": "A fox in the snow"})

    assert response.status_code == 202
    body = response.json()
    assert body["state"] == "ready"
    assert harness.generator.calls == [("A fox in the snow", None)]

    video = client.get(body["video_url"])
    assert video.status_code == 200
    assert video.content == VIDEO_BYTES
    assert video.headers["content-type"] == "video/mp4"


def test_generate_uses_stored_prompt_when_body_is_empty(client, harness):
    client.put("/api/session/prompt", json={"prompt": "A fox in the snow"})

    response = client.post("/api/session/generate")

    assert response.status_code == 202
    assert harness.generator.calls[0][0] == "A fox in the snow"


def test_generate_while_loading_conflicts():
    harness = Harness(inline=False)
    app.dependency_overrides[get_session] = lambda: harness.session
    app.dependency_overrides[get_blob_store] = lambda: harness.blob_store
    try:
        with TestClient(app) as client:
            first = client.post("/api/session/generate", json={"prompt": "A fox in the snow"})
            second = client.post("/api/session/generate", json={"prompt": "Another fox"})
            reset = client.post("/api/session/reset")
    finally:
        app.dependency_overrides.clear()
        harness.session.ticker.stop()

    assert first.status_code == 202
    assert first.json()["state"] == "loading"
    assert first.json()["status_message"] == LOADING_MESSAGES[0]
    assert second.status_code == 409
    assert reset.status_code == 409
    assert len(harness.pending) == 1


def test_download_failure_surfaces_status_then_reset_clears():
    harness = Harness(error=DownloadError(404, "Not Found"))
    app.dependency_overrides[get_session] = lambda: harness.session
    app.dependency_overrides[get_blob_store] = lambda: harness.blob_store
    try:
        with TestClient(app) as client:
            failed = client.post("/api/session/generate", json={"prompt": "A fox in the snow"}).json()
            reset = client.post("/api/session/reset").json()
    finally:
        app.dependency_overrides.clear()

    assert failed["state"] == "error"
    assert "404" in failed["error"]
    assert reset["state"] == "idle"
    assert reset["prompt"] == ""
    assert reset["error"] is None


def test_image_upload_creates_preview(client, harness):
    response = client.post("/api/session/image", files={"image": ("sketch.png", PNG_BYTES, "image/png")})

    assert response.status_code == 200
    preview_url = response.json()["image_preview_url"]
    preview = client.get(preview_url)
    assert preview.content == PNG_BYTES
    assert preview.headers["content-type"] == "image/png"

    client.post("/api/session/generate", json={"prompt": "Bring this sketch to life"})
    assert harness.generator.calls[0][1].mime_type == "image/png"


def test_image_removal(client):
    client.post("/api/session/image", files={"image": ("sketch.png", PNG_BYTES, "image/png")})

    body = client.delete("/api/session/image").json()

    assert body["image_preview_url"] is None


def test_non_image_upload_is_rejected(client):
    response = client.post("/api/session/image", files={"image": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_unknown_blob_is_not_found(client):
    response = client.get("/api/blobs/does-not-exist")

    assert response.status_code == 404


def test_revoked_video_is_not_found_after_reset(client):
    video_url = client.post("/api/session/generate", json={"prompt": "A fox in the snow"}).json()["video_url"]

    client.post("/api/session/reset")

    assert client.get(video_url).status_code == 404


def test_prompt_survives_image_upload(client, harness):
    """
    The page saves the prompt before uploading an image, so the upload
    response must still carry it.
    """
    client.put("/api/session/prompt", json={"prompt": "a cat"})

    body = client.post("/api/session/image", files={"image": ("cat.png", PNG_BYTES, "image/png")}).json()

    assert body["prompt"] == "a cat"
    assert body["can_submit"] is True
    assert body["image_preview_url"] is not None


def test_page_saves_prompt_and_keeps_polling_after_failures(client):
    page = client.get("/").text

    assert 'call("PUT", "/api/session/prompt"' in page
    assert "await savePrompt();" in page
    assert "catch (err)" in page
    assert "pollTimer = setTimeout(refresh, 2000);" in page.split("async function refresh")[1]


def test_oversized_image_is_rejected(client, harness):
    oversized = PNG_BYTES + b"\x00" * (settings.max_image_bytes + 1 - len(PNG_BYTES))

    response = client.post("/api/session/image", files={"image": ("huge.png", oversized, "image/png")})

    assert response.status_code == 413
    assert response.json()["detail"] == "Image too large. Maximum 10 MB."
    assert harness.session.image is None
    assert len(harness.blob_store) == 0


def test_image_at_size_limit_is_accepted(client):
    at_limit = PNG_BYTES + b"\x00" * (settings.max_image_bytes - len(PNG_BYTES))

    response = client.post("/api/session/image", files={"image": ("big.png", at_limit, "image/png")})

    assert response.status_code == 200
