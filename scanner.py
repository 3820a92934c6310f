"""Music discovery scanner.

Walks an ordered list of roots with a hard depth bound and builds a
deduplicated list of ``CatalogEntry``. The depth bound is the only cycle
breaker: a symlink loop is followed until ``max_depth`` and then cut off.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Optional

from filesystem import LocalFileSystem
from interfaces import FileSystem
from models import (
    AUDIO_EXTENSIONS,
    CatalogEntry,
    PermissionState,
    PlatformInfo,
    ScanOutcome,
    ScanPlan,
    ScanResult,
    file_extension,
    strip_extension,
)
from permission_gate import ANDROID

logger = logging.getLogger(__name__)

CANONICAL_ROOT = "/storage/emulated/0"
PRIMARY_FOLDERS = ("Music", "Download", "Downloads")
FALLBACK_FOLDERS = ("Music", "Download", "Downloads", "AudioBooks", "Podcasts")


@dataclass(frozen=True)
class StorageLayout:
    external_storage: str
    documents: str
    app_external: Optional[str] = None

    @classmethod
    def default(cls) -> StorageLayout:
        home = os.path.expanduser("~")
        external = os.environ.get("EXTERNAL_STORAGE") or home
        return cls(
            external_storage=external,
            documents=os.path.join(home, "Documents"),
            app_external=os.environ.get("MUZICVIA_APP_DIR"),
        )


def build_scan_plan(
    platform: PlatformInfo,
    layout: StorageLayout,
    max_depth: int = 3,
    fallback_depth: int = 2,
    extra_roots: Iterable[str] = (),
) -> ScanPlan:
    roots = [os.path.join(layout.external_storage, folder) for folder in PRIMARY_FOLDERS]
    roots.append(layout.documents)
    fallback: tuple[str, ...] = ()

    if platform.family == ANDROID and platform.version >= 30:
        if layout.app_external:
            roots.append(layout.app_external)
        roots.extend(f"{CANONICAL_ROOT}/{folder}" for folder in PRIMARY_FOLDERS)
        fallback = tuple(f"{CANONICAL_ROOT}/{folder}" for folder in FALLBACK_FOLDERS)

    roots.extend(extra_roots)
    return ScanPlan(
        roots=tuple(roots),
        max_depth=max_depth,
        fallback_roots=fallback,
        fallback_depth=fallback_depth,
    )


def scan(
    state: PermissionState,
    plan: ScanPlan,
    extensions: Iterable[str] = AUDIO_EXTENSIONS,
    fs: Optional[FileSystem] = None,
) -> ScanResult:
    """Run one scan pass.

    A pass that is not allowed to run reports ``PERMISSION_DENIED``; a pass
    that ran reports ``COMPLETED`` even when nothing was found.
    """
    if state != PermissionState.GRANTED:
        return ScanResult(outcome=ScanOutcome.PERMISSION_DENIED)

    fs = fs or LocalFileSystem()
    allowed = frozenset(ext.lower() for ext in extensions)
    result = ScanResult(outcome=ScanOutcome.COMPLETED)

    found = collect(fs, plan.roots, allowed, plan.max_depth, result.skipped)
    if not found and plan.fallback_roots:
        logger.info("No music in primary roots, trying %d fallback folders", len(plan.fallback_roots))
        found = collect(fs, plan.fallback_roots, allowed, plan.fallback_depth, result.skipped)
        result.fallback_used = True

    result.entries = dedupe(found)
    logger.info(
        "Scan finished: %d entries, %d duplicates dropped, %d directories skipped",
        len(result.entries),
        len(found) - len(result.entries),
        len(result.skipped),
    )
    return result


def collect(
    fs: FileSystem,
    roots: Iterable[str],
    extensions: frozenset[str],
    max_depth: int,
    skipped: list[str],
) -> list[CatalogEntry]:
    found: list[CatalogEntry] = []
    for root in roots:
        try:
            if not fs.exists(root):
                logger.debug("Scan root %s does not exist", root)
                continue
        except OSError as exc:
            logger.warning("Cannot check scan root %s: %s", root, exc)
            skipped.append(root)
            continue
        _walk(fs, root, extensions, max_depth, 0, found, skipped)
    return found


def _walk(
    fs: FileSystem,
    directory: str,
    extensions: frozenset[str],
    max_depth: int,
    depth: int,
    found: list[CatalogEntry],
    skipped: list[str],
) -> None:
    try:
        entries = fs.list_entries(directory)
    except OSError as exc:
        logger.warning("Error reading directory %s: %s", directory, exc)
        skipped.append(directory)
        return

    for entry in entries:
        if entry.is_directory:
            if depth < max_depth:
                _walk(fs, entry.path, extensions, max_depth, depth + 1, found, skipped)
            continue
        extension = file_extension(entry.name)
        if extension not in extensions:
            continue
        found.append(
            CatalogEntry(
                id=os.path.realpath(entry.path),
                display_name=strip_extension(entry.name),
                path=entry.path,
                size_bytes=max(0, entry.size),
                extension=extension,
            )
        )


def dedupe(entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
    seen: set[str] = set()
    unique: list[CatalogEntry] = []
    for entry in entries:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        unique.append(entry)
    return unique
