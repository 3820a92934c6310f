"""Fixed-interval polling task used to track playback progress."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ProgressClock:
    """Calls ``on_tick`` every ``interval_s`` seconds on a daemon thread.

    Each ``start`` opens a new generation and ``stop`` closes it. Once
    ``stop`` returns no new tick begins, but a tick already running is not
    interrupted or waited for. Callers that need a hard cutoff check their
    own state inside ``on_tick``.
    """

    def __init__(self, on_tick: Callable[[], None], interval_s: float = 1.0) -> None:
        self._on_tick = on_tick
        self._interval_s = interval_s
        self._lock = threading.Lock()
        self._generation = 0
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._stop_event is not None

    def start(self) -> None:
        with self._lock:
            if self._stop_event is not None:
                return
            self._generation += 1
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run,
                args=(self._generation, stop_event),
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            stop_event = self._stop_event
            self._generation += 1
            self._stop_event = None
            self._thread = None
        if stop_event is not None:
            stop_event.set()

    def _run(self, generation: int, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_s):
            with self._lock:
                if generation != self._generation:
                    return
            try:
                self._on_tick()
            except Exception:
                logger.exception("Progress tick failed")
