"""Read-only music catalog exposed to the UI."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

from errors import ERROR_MESSAGES, SCAN_FAILED, SCAN_IO_ERROR
from interfaces import FileSystem
from models import AUDIO_EXTENSIONS, CatalogEntry, PermissionState, ScanOutcome, ScanPlan
from permission_gate import StoragePermissionGate
from scanner import scan

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]
NoticeCallback = Callable[[str, str], None]


class MusicCatalog:
    def __init__(
        self,
        gate: StoragePermissionGate,
        plan: ScanPlan,
        fs: Optional[FileSystem] = None,
        extensions: Iterable[str] = AUDIO_EXTENSIONS,
        on_change: Optional[ChangeCallback] = None,
        on_notice: Optional[NoticeCallback] = None,
    ) -> None:
        self._gate = gate
        self._plan = plan
        self._fs = fs
        self._extensions = frozenset(extensions)
        self._on_change = on_change
        self._on_notice = on_notice

        self._lock = threading.Lock()
        self._entries: tuple[CatalogEntry, ...] = ()
        self._loading = False
        self._has_permission = False

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def plan(self) -> ScanPlan:
        return self._plan

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def has_permission(self) -> bool:
        return self._has_permission

    def update_plan(self, plan: ScanPlan) -> None:
        """Use ``plan`` from the next refresh on."""
        with self._lock:
            self._plan = plan

    def refresh(self) -> None:
        """Ask for permission if it is missing, then rebuild the catalog."""
        self._publish(self._entries, loading=True)
        state = self._gate.state
        if state != PermissionState.GRANTED:
            state = self._gate.request_access()
        if state != PermissionState.GRANTED:
            self._publish((), loading=False, has_permission=False)
            return
        self._rescan(state)

    def _rescan(self, state: PermissionState) -> None:
        try:
            result = scan(state, self.plan, self._extensions, self._fs)
        except Exception as exc:
            logger.exception("Scan failed")
            self._publish((), loading=False, has_permission=True)
            self._emit_notice(SCAN_FAILED, f"{ERROR_MESSAGES[SCAN_FAILED]} ({exc})")
            return

        if result.outcome == ScanOutcome.PERMISSION_DENIED:
            self._publish((), loading=False, has_permission=False)
            return
        self._publish(tuple(result.entries), loading=False, has_permission=True)
        if result.skipped:
            self._emit_notice(
                SCAN_IO_ERROR, f"{ERROR_MESSAGES[SCAN_IO_ERROR]} ({len(result.skipped)} skipped)"
            )

    def _publish(
        self,
        entries: tuple[CatalogEntry, ...],
        loading: bool,
        has_permission: Optional[bool] = None,
    ) -> None:
        with self._lock:
            self._entries = entries
            self._loading = loading
            if has_permission is not None:
                self._has_permission = has_permission
        if self._on_change:
            self._on_change()

    def _emit_notice(self, code: str, message: str) -> None:
        if self._on_notice:
            self._on_notice(code, message)
