import logging
import threading
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

LOADING_MESSAGES = (
    "Warming up the video generation engine...",
    "Analyzing your creative prompt...",
    "Storyboarding the main scenes...",
    "This can take a few minutes. Great art takes time!",
    "Rendering the initial frames...",
    "Adding special effects and lighting...",
    "Finalizing the video stream...",
    "Almost there! Preparing your video for viewing.",
)


class StatusTicker:
    """Cycles through progress messages on a background timer.

    Each ``start`` gets its own stop event, so a tick from a previous run can
    never advance the index once ``stop`` has returned.
    """

    def __init__(self, messages: Sequence[str] = LOADING_MESSAGES, interval: float = 10.0):
        if not messages:
            raise ValueError("StatusTicker needs at least one message")
        self.messages = tuple(messages)
        self.interval = interval
        self._index = 0
        self._lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None

    @property
    def current(self) -> str:
        with self._lock:
            return self.messages[self._index]

    @property
    def running(self) -> bool:
        with self._lock:
            return self._stop_event is not None and not self._stop_event.is_set()

    def advance(self) -> str:
        with self._lock:
            self._index = (self._index + 1) % len(self.messages)
            return self.messages[self._index]

    def start(self, on_tick: Optional[Callable[[str], None]] = None) -> None:
        self.stop()
        stop_event = threading.Event()
        with self._lock:
            self._stop_event = stop_event
        thread = threading.Thread(
            target=self._run, args=(stop_event, on_tick), name="status-ticker", daemon=True
        )
        thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._stop_event is not None:
                self._stop_event.set()
                self._stop_event = None
            self._index = 0

    def _tick(self, stop_event: threading.Event) -> Optional[str]:
        with self._lock:
            if stop_event.is_set():
                return None
            self._index = (self._index + 1) % len(self.messages)
            return self.messages[self._index]

    def _run(self, stop_event: threading.Event, on_tick: Optional[Callable[[str], None]]) -> None:
        while not stop_event.wait(self.interval):
            message = self._tick(stop_event)
            if message is None:
                break
            logger.debug("Status message: %s", message)
            if on_tick is not None:
                on_tick(message)
