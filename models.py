"""Core data models for the app."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

AUDIO_EXTENSIONS = frozenset({".mp3", ".m4a", ".wav", ".flac", ".aac", ".ogg"})

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class PermissionState(str, Enum):
    UNKNOWN = "UNKNOWN"
    GRANTED = "GRANTED"
    DENIED = "DENIED"


class PlaybackStatus(str, Enum):
    EMPTY = "EMPTY"
    LOADING = "LOADING"
    READY = "READY"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


class CapabilityKind(str, Enum):
    READ_MEDIA_AUDIO = "android.permission.READ_MEDIA_AUDIO"
    MANAGE_EXTERNAL_STORAGE = "android.permission.MANAGE_EXTERNAL_STORAGE"
    READ_EXTERNAL_STORAGE = "android.permission.READ_EXTERNAL_STORAGE"
    MEDIA_LIBRARY = "ios.permission.MEDIA_LIBRARY"


class CapabilityResult(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"


class ScanOutcome(str, Enum):
    COMPLETED = "completed"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class PlatformInfo:
    family: str
    version: int = 0


@dataclass(frozen=True)
class DirEntry:
    name: str
    path: str
    is_directory: bool
    size: int = 0


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    display_name: str
    path: str
    size_bytes: int
    extension: str

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

    @property
    def label(self) -> str:
        return f"{self.extension.lstrip('.').upper()} • {self.size_mb:.2f} MB"


@dataclass(frozen=True)
class ScanPlan:
    roots: tuple[str, ...]
    max_depth: int = 3
    fallback_roots: tuple[str, ...] = ()
    fallback_depth: int = 2


@dataclass
class ScanResult:
    outcome: ScanOutcome
    entries: list[CatalogEntry] = field(default_factory=list)
    fallback_used: bool = False
    skipped: list[str] = field(default_factory=list)


def file_extension(name: str) -> str:
    """Lowercase extension including the leading dot, or "" when there is none."""
    index = name.rfind(".")
    if index < 0:
        return ""
    return name[index:].lower()


def strip_extension(name: str) -> str:
    return _EXTENSION_RE.sub("", name)


def format_time(seconds: float) -> str:
    total = max(0, int(seconds))
    return f"{total // 60}:{total % 60:02d}"
