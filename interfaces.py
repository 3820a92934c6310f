"""Protocol interfaces for the external boundaries."""

from __future__ import annotations

from typing import Callable, Protocol

from models import CapabilityKind, CapabilityResult, DirEntry


class CapabilityRequester(Protocol):
    def request(self, kind: CapabilityKind) -> CapabilityResult: ...


class FileSystem(Protocol):
    def exists(self, path: str) -> bool: ...

    def list_entries(self, path: str) -> list[DirEntry]: ...


class AudioResource(Protocol):
    def play(self, on_complete: Callable[[bool], None]) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def get_current_time(self) -> float: ...

    def set_current_time(self, seconds: float) -> None: ...

    def get_duration(self) -> float: ...

    def release(self) -> None: ...


class Decoder(Protocol):
    def open(self, path: str) -> AudioResource: ...


class ConfigStore(Protocol):
    def get_max_depth(self) -> int: ...

    def get_fallback_depth(self) -> int: ...

    def get_skip_seconds(self) -> float: ...

    def get_extra_roots(self) -> list[str]: ...

    def set_extra_roots(self, roots: list[str]) -> None: ...
