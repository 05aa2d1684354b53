import base64
import os
from types import SimpleNamespace

import pytest

if not os.environ.get("API_KEY"):
    os.environ["API_KEY"] = "test-api-key"

from veo_generator.services.blob_store import BlobStore  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video-bytes"


def make_operation(done, uri=None, error=None, filtered_reasons=None, name="operations/test-op"):
    response = None
    if done:
        videos = [SimpleNamespace(video=SimpleNamespace(uri=uri))] if uri else []
        response = SimpleNamespace(generated_videos=videos, rai_media_filtered_reasons=filtered_reasons or [])
    return SimpleNamespace(name=name, done=done, error=error, response=response)


class FakeModels:
    def __init__(self, operation=None, error=None, events=None):
        self.operation = operation
        self.error = error
        self.events = events if events is not None else []
        self.requests = []

    def generate_videos(self, **kwargs):
        self.events.append("submit")
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.operation


class FakeOperations:
    def __init__(self, results=(), events=None):
        self.results = list(results)
        self.events = events if events is not None else []
        self.queries = []

    def get(self, operation):
        self.events.append("poll")
        self.queries.append(operation)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeResponse:
    def __init__(self, status_code=200, content=b"", reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason


class FakeHttp:
    def __init__(self, response=None, error=None, events=None):
        self.response = response or FakeResponse(content=VIDEO_BYTES)
        self.error = error
        self.events = events if events is not None else []
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.events.append("fetch")
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


class FakeGenerator:
    """Stands in for VideoGenerationService inside session tests."""

    def __init__(self, blob_store, content=VIDEO_BYTES, error=None):
        self.blob_store = blob_store
        self.content = content
        self.error = error
        self.calls = []
        self.observed_states = []
        self.session = None

    def generate(self, prompt, image=None):
        self.calls.append((prompt, image))
        if self.session is not None:
            self.observed_states.append(self.session.state)
        if self.error is not None:
            raise self.error
        return self.blob_store.put(self.content, "video/mp4")


@pytest.fixture
def blob_store():
    return BlobStore()


@pytest.fixture
def png_payload_data():
    return base64.b64encode(PNG_BYTES).decode("ascii")
