import logging
import threading
from typing import Any, BinaryIO, Callable, Dict, Optional

from veo_generator.services.blob_store import BlobReference, BlobStore
from veo_generator.services.image_encoding import ImagePayload, encode_image
from veo_generator.ui.states import Error, Idle, Loading, Ready, UIState
from veo_generator.ui.ticker import StatusTicker

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during video generation."


class PromptValidationError(ValueError):
    pass


class SessionBusyError(RuntimeError):
    pass


def _spawn_worker(task: Callable[[], None]) -> None:
    threading.Thread(target=task, name="video-generation", daemon=True).start()


class GenerationSession:
    """Form fields and UI state for one user of the generator.

    ``generator`` is anything with ``generate(prompt, image) -> BlobReference``.
    At most one request is in flight; the call runs through
    ``run_in_background`` and reports back through ``_finish``.
    """

    def __init__(
        self,
        generator,
        blob_store: BlobStore,
        ticker: Optional[StatusTicker] = None,
        run_in_background: Callable[[Callable[[], None]], None] = _spawn_worker,
    ):
        self.generator = generator
        self.blob_store = blob_store
        self.ticker = ticker or StatusTicker()
        self._run_in_background = run_in_background
        self._lock = threading.RLock()
        self._prompt = ""
        self._image: Optional[ImagePayload] = None
        self._image_preview: Optional[BlobReference] = None
        self._state: UIState = Idle()
        self._run_id = 0

    @property
    def state(self) -> UIState:
        with self._lock:
            return self._state

    @property
    def prompt(self) -> str:
        with self._lock:
            return self._prompt

    @property
    def image(self) -> Optional[ImagePayload]:
        with self._lock:
            return self._image

    @property
    def image_preview(self) -> Optional[BlobReference]:
        with self._lock:
            return self._image_preview

    @property
    def video(self) -> Optional[BlobReference]:
        state = self.state
        return state.video if isinstance(state, Ready) else None

    @property
    def error(self) -> Optional[str]:
        state = self.state
        return state.message if isinstance(state, Error) else None

    @property
    def can_submit(self) -> bool:
        with self._lock:
            return self._submittable()

    def set_prompt(self, prompt: str) -> None:
        with self._lock:
            self._ensure_not_loading("Cannot change the prompt while a video is being generated.")
            self._prompt = prompt or ""

    def select_image(
        self, source: BinaryIO, media_type: Optional[str] = None, filename: Optional[str] = None
    ) -> ImagePayload:
        payload = encode_image(source, media_type=media_type, filename=filename)
        with self._lock:
            self._ensure_not_loading("Cannot change the image while a video is being generated.")
            self._release_preview()
            self._image = payload
            self._image_preview = self.blob_store.put(payload.decode(), payload.mime_type)
        logger.info("Selected %s image %s", payload.mime_type, filename or "<upload>")
        return payload

    def clear_image(self) -> None:
        with self._lock:
            self._ensure_not_loading("Cannot change the image while a video is being generated.")
            self._release_preview()
            self._image = None

    def submit(self) -> UIState:
        with self._lock:
            self._ensure_not_loading("A video is already being generated.")
            if not self._prompt.strip():
                raise PromptValidationError("Please enter a prompt.")

            self._release_result()
            self._run_id += 1
            run_id = self._run_id
            prompt, image = self._prompt, self._image
            self.ticker.stop()
            self._state = Loading(self.ticker.current)
            self.ticker.start(lambda message: self._on_status_tick(run_id, message))
            state = self._state

        logger.info("Starting generation run %d (image=%s)", run_id, image is not None)
        self._run_in_background(lambda: self._run(run_id, prompt, image))
        return state

    def reset(self) -> UIState:
        with self._lock:
            self._ensure_not_loading("Cannot start over while a video is being generated.")
            self._release_result()
            self._release_preview()
            self._prompt = ""
            self._image = None
            self._state = Idle()
            return self._state

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            state = self._state
            return {
                "state": state.name,
                "prompt": self._prompt,
                "status_message": state.message if isinstance(state, Loading) else None,
                "error": state.message if isinstance(state, Error) else None,
                "video_url": state.video.url if isinstance(state, Ready) else None,
                "image_preview_url": self._image_preview.url if self._image_preview else None,
                "can_submit": self._submittable(),
            }

    def _run(self, run_id: int, prompt: str, image: Optional[ImagePayload]) -> None:
        try:
            video = self.generator.generate(prompt, image)
        except Exception as exc:
            logger.warning("Generation run %d failed: %s", run_id, exc)
            self._finish(run_id, Error(str(exc) or UNKNOWN_ERROR_MESSAGE))
        else:
            self._finish(run_id, Ready(video))

    def _finish(self, run_id: int, outcome: UIState) -> None:
        with self._lock:
            self.ticker.stop()
            if run_id != self._run_id or not isinstance(self._state, Loading):
                logger.warning("Discarding outcome of stale generation run %d", run_id)
                if isinstance(outcome, Ready):
                    self.blob_store.revoke(outcome.video)
                return
            self._state = outcome
        logger.info("Generation run %d finished: %s", run_id, outcome.name)

    def _on_status_tick(self, run_id: int, message: str) -> None:
        with self._lock:
            if run_id == self._run_id and isinstance(self._state, Loading):
                self._state = Loading(message)

    def _submittable(self) -> bool:
        return bool(self._prompt.strip()) and not isinstance(self._state, Loading)

    def _ensure_not_loading(self, message: str) -> None:
        if isinstance(self._state, Loading):
            raise SessionBusyError(message)

    def _release_result(self) -> None:
        if isinstance(self._state, Ready):
            self.blob_store.revoke(self._state.video)

    def _release_preview(self) -> None:
        if self._image_preview is not None:
            self.blob_store.revoke(self._image_preview)
            self._image_preview = None
