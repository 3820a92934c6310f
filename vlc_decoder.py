"""Audio decoder adapter backed by libVLC."""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Callable, Optional

try:
    import vlc
except Exception:  # pragma: no cover
    vlc = None  # type: ignore

logger = logging.getLogger(__name__)


class VlcAudioResource:
    """One opened media file bound to its own libVLC media player."""

    def __init__(self, player: Any, media: Any, duration_s: float) -> None:
        self._player = player
        self._media = media
        self._duration_s = duration_s
        self._lock = threading.Lock()
        self._on_complete: Optional[Callable[[bool], None]] = None
        self._pending_seek_s: Optional[float] = None
        self._released = False
        self._events = player.event_manager()
        self._events.event_attach(vlc.EventType.MediaPlayerEndReached, self._on_end_reached)
        self._events.event_attach(vlc.EventType.MediaPlayerEncounteredError, self._on_player_error)
        self._events.event_attach(vlc.EventType.MediaPlayerPlaying, self._on_playing)

    def play(self, on_complete: Callable[[bool], None]) -> None:
        with self._lock:
            self._ensure_open()
            self._on_complete = on_complete
            state = self._player.get_state()
            if state == vlc.State.Paused:
                self._player.set_pause(0)
                return
            if state == vlc.State.Ended:
                self._player.stop()
            if self._player.play() == -1:
                raise RuntimeError("libVLC could not start playback")

    def pause(self) -> None:
        with self._lock:
            self._ensure_open()
            self._player.set_pause(1)

    def stop(self) -> None:
        with self._lock:
            self._ensure_open()
            self._pending_seek_s = None
            self._player.stop()

    def get_current_time(self) -> float:
        with self._lock:
            self._ensure_open()
            return max(0, self._player.get_time()) / 1000.0

    def set_current_time(self, seconds: float) -> None:
        with self._lock:
            self._ensure_open()
            state = self._player.get_state()
            if state in (vlc.State.Playing, vlc.State.Paused):
                self._player.set_time(int(seconds * 1000))
            else:
                # libVLC ignores set_time before playback starts
                self._pending_seek_s = seconds

    def get_duration(self) -> float:
        return self._duration_s

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            self._on_complete = None
            self._events.event_detach(vlc.EventType.MediaPlayerEndReached)
            self._events.event_detach(vlc.EventType.MediaPlayerEncounteredError)
            self._events.event_detach(vlc.EventType.MediaPlayerPlaying)
            self._player.stop()
            self._player.release()
            self._media.release()

    def _ensure_open(self) -> None:
        if self._released:
            raise RuntimeError("audio resource already released")

    # libVLC forbids calling back into the player from its event thread,
    # so event handlers only hand work off to a short-lived thread.

    def _on_end_reached(self, event: Any) -> None:
        self._dispatch_completion(True)

    def _on_player_error(self, event: Any) -> None:
        self._dispatch_completion(False)

    def _on_playing(self, event: Any) -> None:
        if self._pending_seek_s is not None:
            threading.Thread(target=self._apply_pending_seek, daemon=True).start()

    def _apply_pending_seek(self) -> None:
        with self._lock:
            seconds = self._pending_seek_s
            self._pending_seek_s = None
            if seconds is None or self._released:
                return
            self._player.set_time(int(seconds * 1000))

    def _dispatch_completion(self, success: bool) -> None:
        callback = self._on_complete
        self._on_complete = None
        if callback is None or self._released:
            return
        threading.Thread(target=callback, args=(success,), daemon=True).start()


class VlcDecoder:
    def __init__(self, parse_timeout_s: float = 5.0, poll_interval_s: float = 0.05) -> None:
        self._parse_timeout_s = parse_timeout_s
        self._poll_interval_s = poll_interval_s
        self._instance: Any = None
        self._lock = threading.Lock()

    def open(self, path: str) -> VlcAudioResource:
        if vlc is None:
            raise RuntimeError("python-vlc is not installed")
        if not os.path.isfile(path):
            raise FileNotFoundError(f"No such audio file: {path}")

        instance = self._get_instance()
        media = instance.media_new(path)
        try:
            duration_ms = self._parse_duration(media)
        except Exception:
            media.release()
            raise
        player = instance.media_player_new()
        player.set_media(media)
        logger.debug("Opened %s (%d ms)", path, duration_ms)
        return VlcAudioResource(player, media, duration_ms / 1000.0)

    def _get_instance(self) -> Any:
        with self._lock:
            if self._instance is None:
                self._instance = vlc.Instance("--no-video", "--quiet")
                if self._instance is None:
                    raise RuntimeError("libVLC could not be initialised")
            return self._instance

    def _parse_duration(self, media: Any) -> int:
        media.parse_with_options(vlc.MediaParseFlag.local, int(self._parse_timeout_s * 1000))
        deadline = time.monotonic() + self._parse_timeout_s
        while True:
            status = media.get_parsed_status()
            if status in (vlc.MediaParsedStatus.done, vlc.MediaParsedStatus.skipped):
                break
            if status in (vlc.MediaParsedStatus.failed, vlc.MediaParsedStatus.timeout):
                raise RuntimeError(f"libVLC could not parse media ({status})")
            if time.monotonic() >= deadline:
                raise RuntimeError("libVLC media parse timed out")
            time.sleep(self._poll_interval_s)
        return max(0, media.get_duration())
