import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx
import requests
from google.genai import errors, types

from veo_generator.config import settings
from veo_generator.services.blob_store import BlobReference, BlobStore
from veo_generator.services.genai_client import get_genai_client
from veo_generator.services.image_encoding import ImagePayload

logger = logging.getLogger(__name__)

VIDEO_MEDIA_TYPE = "video/mp4"
GENERIC_FAILURE_MESSAGE = "Failed to generate video. Please check the prompt and try again."


class GenerationError(RuntimeError):
    """A generation request failed; the message is safe to show to users."""

    default_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class SubmissionError(GenerationError):
    default_message = "The video generation request could not be started. Please check the prompt and try again."


class PollingError(GenerationError):
    default_message = "Lost contact with the video generation service while waiting for the video. Please try again."


class OperationFailedError(GenerationError):
    default_message = "The video generation service reported a failure. Please try again."


class ResultMissingError(GenerationError):
    default_message = "Video generation completed, but no download link was found."


class DownloadError(GenerationError):
    def __init__(self, status_code: Optional[int] = None, reason: str = ""):
        self.status_code = status_code
        if status_code is None:
            message = "Failed to download video file."
        else:
            detail = f"{status_code} {reason}".strip()
            message = f"Failed to download video file: HTTP {detail}."
        super().__init__(message)


class VideoGenerationService:
    """Runs one Veo generation request from submission to a playable blob."""

    def __init__(
        self,
        blob_store: BlobStore,
        api_key: str,
        client: Any = None,
        model: str = "veo-2.0-generate-001",
        number_of_videos: int = 1,
        poll_interval_seconds: float = 10.0,
        download_timeout_seconds: float = 120.0,
        http: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.blob_store = blob_store
        self.api_key = api_key
        self.model = model
        self.number_of_videos = number_of_videos
        self.poll_interval_seconds = poll_interval_seconds
        self.download_timeout_seconds = download_timeout_seconds
        self.http = http or requests.Session()
        self.sleep = sleep
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_genai_client()
        return self._client

    def generate(self, prompt: str, image: Optional[ImagePayload] = None) -> BlobReference:
        try:
            operation = self._submit(prompt, image)
            operation = self._wait_for_completion(operation)
            locator = self._result_locator(operation)
            video_bytes = self._download(locator)
            reference = self.blob_store.put(video_bytes, VIDEO_MEDIA_TYPE)
        except GenerationError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while generating video")
            raise GenerationError() from exc

        logger.info("Video ready as blob %s (%d bytes)", reference.blob_id, reference.size)
        return reference

    def build_request(self, prompt: str, image: Optional[ImagePayload] = None) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "config": types.GenerateVideosConfig(number_of_videos=self.number_of_videos),
        }
        if image is not None:
            request["image"] = types.Image(image_bytes=image.decode(), mime_type=image.mime_type)
        return request

    def _submit(self, prompt: str, image: Optional[ImagePayload]):
        try:
            request = self.build_request(prompt, image)
            operation = self.client.models.generate_videos(**request)
        except (errors.APIError, httpx.HTTPError, ValueError) as exc:
            logger.exception("Failed to submit video generation request")
            raise SubmissionError() from exc

        if operation is None:
            raise SubmissionError()
        logger.info("Submitted video generation operation %s", getattr(operation, "name", None))
        return operation

    def _wait_for_completion(self, operation):
        queries = 0
        while not operation.done:
            self.sleep(self.poll_interval_seconds)
            queries += 1
            try:
                operation = self.client.operations.get(operation)
            except (errors.APIError, httpx.HTTPError) as exc:
                logger.exception("Status query #%d failed", queries)
                raise PollingError() from exc
            logger.debug("Status query #%d: done=%s", queries, bool(operation.done))

        if getattr(operation, "error", None):
            logger.error("Operation %s failed: %s", getattr(operation, "name", None), operation.error)
            raise OperationFailedError()
        logger.info("Operation %s completed after %d status queries", getattr(operation, "name", None), queries)
        return operation

    def _result_locator(self, operation) -> str:
        response = getattr(operation, "response", None)
        generated = getattr(response, "generated_videos", None) or []
        video = getattr(generated[0], "video", None) if generated else None
        uri = getattr(video, "uri", None)
        if uri:
            return uri

        reasons = getattr(response, "rai_media_filtered_reasons", None) or []
        if reasons:
            logger.warning("Generated media was filtered: %s", reasons)
            raise ResultMissingError(
                "Video generation completed, but the result was filtered: " + "; ".join(reasons)
            )
        raise ResultMissingError()

    def _download(self, locator: str) -> bytes:
        try:
            response = self.http.get(locator, params={"key": self.api_key}, timeout=self.download_timeout_seconds)
        except requests.RequestException as exc:
            logger.exception("Video download request failed")
            raise DownloadError() from exc

        if not 200 <= response.status_code < 300:
            logger.error("Video download returned HTTP %s %s", response.status_code, response.reason)
            raise DownloadError(response.status_code, response.reason or "")
        return response.content


def build_video_service(blob_store: BlobStore) -> VideoGenerationService:
    return VideoGenerationService(
        blob_store=blob_store,
        api_key=settings.api_key,
        model=settings.veo_model,
        number_of_videos=settings.number_of_videos,
        poll_interval_seconds=settings.poll_interval_seconds,
        download_timeout_seconds=settings.download_timeout_seconds,
    )
