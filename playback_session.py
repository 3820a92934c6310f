"""State-machine based playback session."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import DECODE_LOAD_ERROR, ERROR_MESSAGES, PLAYBACK_ERROR
from interfaces import AudioResource, Decoder
from models import PlaybackStatus
from progress_clock import ProgressClock

logger = logging.getLogger(__name__)

StateCallback = Callable[[PlaybackStatus, PlaybackStatus], None]
ProgressCallback = Callable[[float, float], None]
ErrorCallback = Callable[[str, str], None]

PLAYABLE = (PlaybackStatus.READY, PlaybackStatus.PAUSED, PlaybackStatus.STOPPED)
ACTIVE = (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED)


class PlaybackSession:
    """Owns at most one decoder resource and the progress clock polling it.

    ``is_seeking`` is raised by every seek and cleared after a short quiescence
    window; clock ticks landing inside the window are dropped so a stale read
    from the resource cannot overwrite the position a seek just set.
    """

    def __init__(
        self,
        decoder: Decoder,
        clock_interval_s: float = 1.0,
        seek_quiescence_s: float = 0.1,
        on_state_change: Optional[StateCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._decoder = decoder
        self._seek_quiescence_s = seek_quiescence_s
        self._on_state_change = on_state_change
        self._on_progress = on_progress
        self._on_error = on_error

        self._lock = threading.RLock()
        self._status = PlaybackStatus.EMPTY
        self._path: Optional[str] = None
        self._resource: Optional[AudioResource] = None
        self._resource_id = 0
        self._duration = 0.0
        self._position = 0.0
        self._is_seeking = False
        self._seek_generation = 0
        self._load_id = 0
        self._load_lock = threading.Lock()
        self._seek_timer: Optional[threading.Timer] = None
        self._clock = ProgressClock(self._on_tick, interval_s=clock_interval_s)

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def duration_seconds(self) -> float:
        return self._duration

    @property
    def position_seconds(self) -> float:
        return self._position

    @property
    def is_seeking(self) -> bool:
        return self._is_seeking

    @property
    def has_resource(self) -> bool:
        return self._resource is not None

    def load(self, path: str) -> None:
        """Release the current resource and open ``path``.

        The decoder is opened without holding the session lock, so transport
        calls from other threads return immediately while a slow open runs.
        Loads themselves are serialized. A load superseded by ``close``
        discards its resource.
        """
        with self._load_lock:
            self._load(path)

    def _load(self, path: str) -> None:
        with self._lock:
            self._clock.stop()
            self._cancel_seek_window()
            self._release_resource()
            self._load_id += 1
            load_id = self._load_id
            self._path = path
            self._duration = 0.0
            self._position = 0.0
            self._transition(PlaybackStatus.LOADING)

        try:
            resource = self._decoder.open(path)
        except Exception as exc:
            self._fail_load(load_id, path, exc)
            return
        try:
            duration = max(0.0, float(resource.get_duration()))
        except Exception as exc:
            self._safe_release(resource)
            self._fail_load(load_id, path, exc)
            return

        with self._lock:
            if load_id != self._load_id:
                logger.debug("Discarding superseded load of %s", path)
                self._safe_release(resource)
                return
            self._resource = resource
            self._resource_id += 1
            self._duration = duration
            self._transition(PlaybackStatus.READY)
            self._emit_progress()

    def play_pause(self) -> None:
        with self._lock:
            reload_path = None
            if self._resource is None and self._status != PlaybackStatus.LOADING:
                reload_path = self._path
        if reload_path is not None:
            self.load(reload_path)
            return

        with self._lock:
            if self._resource is None:
                return

            if self._status == PlaybackStatus.PLAYING:
                self._clock.stop()
                self._safe_call("pause", self._resource.pause)
                self._transition(PlaybackStatus.PAUSED)
                return

            if self._status not in PLAYABLE:
                return
            resource_id = self._resource_id
            try:
                self._resource.play(lambda success: self._handle_completion(resource_id, success))
            except Exception as exc:
                self._playback_failed(str(exc))
                return
            self._transition(PlaybackStatus.PLAYING)
            self._clock.start()

    def stop(self) -> None:
        with self._lock:
            if self._resource is None or self._status not in ACTIVE:
                return
            self._clock.stop()
            self._cancel_seek_window()
            self._safe_call("stop", self._resource.stop)
            self._position = 0.0
            self._transition(PlaybackStatus.STOPPED)
            self._emit_progress()

    def seek(self, target_seconds: float) -> None:
        with self._lock:
            if self._resource is None:
                return
            target = min(max(0.0, float(target_seconds)), self._duration)
            self._is_seeking = True
            self._seek_generation += 1
            self._restart_seek_window(self._seek_generation)
            if not self._safe_call("seek", self._resource.set_current_time, target):
                return
            self._position = target
            self._emit_progress()

    def skip_forward(self, delta_seconds: float = 10.0) -> None:
        with self._lock:
            if self._resource is None:
                return
            self.seek(min(self._position + delta_seconds, self._duration))

    def close(self) -> None:
        """Tear the session down, releasing the resource if one is held."""
        with self._lock:
            self._clock.stop()
            self._cancel_seek_window()
            self._release_resource()
            self._load_id += 1
            self._position = 0.0
            self._duration = 0.0
            self._transition(PlaybackStatus.EMPTY)

    def _on_tick(self) -> None:
        with self._lock:
            if self._resource is None or self._status != PlaybackStatus.PLAYING:
                return
            if self._is_seeking:
                return
            try:
                position = float(self._resource.get_current_time())
            except Exception as exc:
                logger.warning("Reading playback position failed: %s", exc)
                return
            position = max(0.0, position)
            if self._duration > 0:
                position = min(position, self._duration)
            self._position = position
            self._emit_progress()

    def _handle_completion(self, resource_id: int, success: bool) -> None:
        with self._lock:
            if resource_id != self._resource_id or self._resource is None:
                return
            if self._status not in ACTIVE:
                return
            if success:
                self._clock.stop()
                self._cancel_seek_window()
                self._safe_call("stop", self._resource.stop)
                self._position = 0.0
                self._transition(PlaybackStatus.STOPPED)
                self._emit_progress()
            else:
                self._playback_failed("decoder reported failure")

    def _playback_failed(self, message: str) -> None:
        logger.warning("Playback of %s failed: %s", self._path, message)
        self._clock.stop()
        self._cancel_seek_window()
        if self._resource is not None:
            self._safe_call("stop", self._resource.stop)
        self._position = 0.0
        self._transition(PlaybackStatus.STOPPED)
        self._emit_progress()
        self._emit_error(PLAYBACK_ERROR, f"{ERROR_MESSAGES[PLAYBACK_ERROR]} {message}")

    def _fail_load(self, load_id: int, path: str, exc: Exception) -> None:
        logger.warning("Failed to load %s: %s", path, exc)
        with self._lock:
            if load_id != self._load_id:
                return
            self._transition(PlaybackStatus.FAILED)
            self._emit_error(DECODE_LOAD_ERROR, f"{ERROR_MESSAGES[DECODE_LOAD_ERROR]} {exc}")

    def _restart_seek_window(self, generation: int) -> None:
        if self._seek_timer is not None:
            self._seek_timer.cancel()
        timer = threading.Timer(self._seek_quiescence_s, self._end_seek, args=(generation,))
        timer.daemon = True
        self._seek_timer = timer
        timer.start()

    def _end_seek(self, generation: int) -> None:
        with self._lock:
            if generation != self._seek_generation:
                return
            self._is_seeking = False
            self._seek_timer = None

    def _cancel_seek_window(self) -> None:
        if self._seek_timer is not None:
            self._seek_timer.cancel()
            self._seek_timer = None
        self._seek_generation += 1
        self._is_seeking = False

    def _release_resource(self) -> None:
        resource = self._resource
        if resource is None:
            return
        self._resource = None
        self._resource_id += 1
        self._safe_release(resource)

    def _safe_release(self, resource: AudioResource) -> None:
        try:
            resource.release()
        except Exception as exc:
            logger.warning("Releasing audio resource failed: %s", exc)

    def _safe_call(self, action: str, func: Callable[..., None], *args: float) -> bool:
        try:
            func(*args)
        except Exception as exc:
            logger.warning("Audio resource %s failed: %s", action, exc)
            return False
        return True

    def _emit_progress(self) -> None:
        if self._on_progress:
            self._on_progress(self._position, self._duration)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _transition(self, to_state: PlaybackStatus) -> None:
        from_state = self._status
        if from_state == to_state:
            return
        self._status = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
