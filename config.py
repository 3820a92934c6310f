"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_MAX_DEPTH = 3
DEFAULT_FALLBACK_DEPTH = 2
DEFAULT_SKIP_SECONDS = 10.0


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "muzicvia" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_max_depth(self) -> int:
        return self._get_int("max_depth", DEFAULT_MAX_DEPTH)

    def set_max_depth(self, depth: int) -> None:
        self._set("max_depth", int(depth))

    def get_fallback_depth(self) -> int:
        return self._get_int("fallback_depth", DEFAULT_FALLBACK_DEPTH)

    def get_skip_seconds(self) -> float:
        value = self._read_all().get("skip_seconds", DEFAULT_SKIP_SECONDS)
        try:
            return float(value)
        except (TypeError, ValueError):
            return DEFAULT_SKIP_SECONDS

    def set_skip_seconds(self, seconds: float) -> None:
        self._set("skip_seconds", float(seconds))

    def get_extra_roots(self) -> list[str]:
        value = self._read_all().get("extra_roots", [])
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    def set_extra_roots(self, roots: list[str]) -> None:
        self._set("extra_roots", [str(root) for root in roots])

    def _get_int(self, key: str, default: int) -> int:
        value = self._read_all().get(key, default)
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return default

    def _set(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
