"""Local filesystem adapter used by the scanner."""

from __future__ import annotations

import logging
import os

from models import DirEntry

logger = logging.getLogger(__name__)


class LocalFileSystem:
    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def list_entries(self, path: str) -> list[DirEntry]:
        """List a directory sorted by name.

        Raises ``OSError`` when the directory itself cannot be read. Entries
        that vanish or cannot be stat'd while listing are dropped.
        """
        entries: list[DirEntry] = []
        with os.scandir(path) as it:
            for item in it:
                try:
                    if item.is_dir():
                        entries.append(DirEntry(name=item.name, path=item.path, is_directory=True))
                    elif item.is_file():
                        size = item.stat().st_size
                        entries.append(
                            DirEntry(name=item.name, path=item.path, is_directory=False, size=size)
                        )
                except OSError as exc:
                    logger.debug("Skipping %s: %s", item.path, exc)
        entries.sort(key=lambda entry: entry.name)
        return entries
