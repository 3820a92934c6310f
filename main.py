"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys
import threading

from catalog import MusicCatalog
from config import JsonConfigStore
from models import PlaybackStatus, ScanPlan, format_time
from permission_gate import StorageAccessRequester, StoragePermissionGate, detect_platform
from playback_session import PlaybackSession
from scanner import StorageLayout, build_scan_plan
from vlc_decoder import VlcDecoder

try:
    from PySide6.QtCore import QObject, Qt, Signal
    from PySide6.QtGui import QAction
    from PySide6.QtWidgets import (
        QApplication,
        QFileDialog,
        QHBoxLayout,
        QInputDialog,
        QLabel,
        QListWidget,
        QListWidgetItem,
        QMenu,
        QMessageBox,
        QPushButton,
        QSlider,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

SLIDER_STEPS = 1000


class UIBridge(QObject):
    catalog_signal = Signal()
    state_signal = Signal(str, str)  # from_state, to_state
    progress_signal = Signal(float, float)  # position, duration
    notice_signal = Signal(str, str)  # code, message


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        self.ui = UIBridge()
        self.ui.catalog_signal.connect(self._on_catalog_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.progress_signal.connect(self._on_progress_ui)
        self.ui.notice_signal.connect(self._on_notice_ui)

        self._platform = detect_platform()
        self._layout = StorageLayout.default()
        gate = StoragePermissionGate(
            requester=StorageAccessRequester(self._layout.external_storage),
            platform=self._platform,
            on_notice=self._on_notice,
        )
        self.catalog = MusicCatalog(
            gate=gate,
            plan=self._build_plan(),
            on_change=self.ui.catalog_signal.emit,
            on_notice=self._on_notice,
        )
        self.session = PlaybackSession(
            decoder=VlcDecoder(),
            on_state_change=self._on_state_change,
            on_progress=self._on_progress,
            on_error=self._on_notice,
        )
        self._refresh_lock = threading.Lock()
        self._build_window()

    def _build_window(self) -> None:
        self.window = QWidget()
        self.window.setWindowTitle("Muzicvia")
        self.window.resize(480, 640)

        self.status_label = QLabel("Scanning...")
        self.track_list = QListWidget()
        self.track_list.itemDoubleClicked.connect(self._on_track_chosen)

        self.now_playing = QLabel("No file selected")
        self.now_playing.setAlignment(Qt.AlignCenter)
        self.position_label = QLabel(format_time(0))
        self.duration_label = QLabel(format_time(0))
        self.slider = QSlider(Qt.Horizontal)
        self.slider.setRange(0, SLIDER_STEPS)
        self.slider.sliderReleased.connect(self._on_slider_released)

        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.refresh)
        self.stop_button = QPushButton("Stop")
        self.stop_button.clicked.connect(self.session.stop)
        self.play_button = QPushButton("Play")
        self.play_button.clicked.connect(lambda: self._in_background(self.session.play_pause))
        self.skip_button = QPushButton(f"+{int(self.config_store.get_skip_seconds())}s")
        self.skip_button.clicked.connect(self._on_skip)
        self.settings_button = QPushButton("Settings")
        self.settings_button.setMenu(self._build_settings_menu())

        progress = QHBoxLayout()
        progress.addWidget(self.position_label)
        progress.addWidget(self.slider)
        progress.addWidget(self.duration_label)

        controls = QHBoxLayout()
        for button in (
            self.refresh_button,
            self.stop_button,
            self.play_button,
            self.skip_button,
            self.settings_button,
        ):
            controls.addWidget(button)

        root = QVBoxLayout(self.window)
        root.addWidget(self.status_label)
        root.addWidget(self.track_list)
        root.addWidget(self.now_playing)
        root.addLayout(progress)
        root.addLayout(controls)
        self._update_controls(self.session.status)

    def _build_plan(self) -> ScanPlan:
        return build_scan_plan(
            self._platform,
            self._layout,
            max_depth=self.config_store.get_max_depth(),
            fallback_depth=self.config_store.get_fallback_depth(),
            extra_roots=self.config_store.get_extra_roots(),
        )

    def _build_settings_menu(self) -> QMenu:
        menu = QMenu(self.window)

        depth_action = QAction("Set Scan Depth", menu)
        depth_action.triggered.connect(self._set_scan_depth)
        menu.addAction(depth_action)

        skip_action = QAction("Set Skip Seconds", menu)
        skip_action.triggered.connect(self._set_skip_seconds)
        menu.addAction(skip_action)

        folder_action = QAction("Add Music Folder", menu)
        folder_action.triggered.connect(self._add_music_folder)
        menu.addAction(folder_action)
        return menu

    def _set_scan_depth(self) -> None:
        value, ok = QInputDialog.getInt(
            self.window, "Scan Depth", "Folder levels to search", self.config_store.get_max_depth(), 0, 10
        )
        if not ok:
            return
        self.config_store.set_max_depth(value)
        self._apply_plan()

    def _set_skip_seconds(self) -> None:
        value, ok = QInputDialog.getInt(
            self.window, "Skip", "Seconds to skip forward", int(self.config_store.get_skip_seconds()), 1, 300
        )
        if not ok:
            return
        self.config_store.set_skip_seconds(float(value))
        self.skip_button.setText(f"+{value}s")

    def _add_music_folder(self) -> None:
        folder = QFileDialog.getExistingDirectory(self.window, "Add Music Folder")
        if not folder:
            return
        roots = self.config_store.get_extra_roots()
        if folder in roots:
            return
        self.config_store.set_extra_roots([*roots, folder])
        self._apply_plan()

    def _apply_plan(self) -> None:
        self.catalog.update_plan(self._build_plan())
        self.refresh()

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: PlaybackStatus, to_state: PlaybackStatus) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_progress(self, position: float, duration: float) -> None:
        self.ui.progress_signal.emit(position, duration)

    def _on_notice(self, code: str, message: str) -> None:
        self.ui.notice_signal.emit(code, message)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_catalog_ui(self) -> None:
        if self.catalog.loading:
            self.status_label.setText("Scanning...")
            return
        if not self.catalog.has_permission:
            self.status_label.setText("Storage permission is required. Press Refresh to retry.")
        else:
            self.status_label.setText(f"{len(self.catalog.entries)} music files")
        self.track_list.clear()
        for entry in self.catalog.entries:
            item = QListWidgetItem(f"{entry.display_name}\n{entry.label}")
            item.setData(Qt.UserRole, entry.path)
            self.track_list.addItem(item)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        self._update_controls(PlaybackStatus(to_state))

    def _on_progress_ui(self, position: float, duration: float) -> None:
        self.position_label.setText(format_time(position))
        self.duration_label.setText(format_time(duration))
        if not self.slider.isSliderDown():
            value = int(position / duration * SLIDER_STEPS) if duration > 0 else 0
            self.slider.setValue(value)

    def _on_notice_ui(self, code: str, message: str) -> None:
        QMessageBox.warning(self.window, code.replace("_", " ").title(), message)

    def _update_controls(self, status: PlaybackStatus) -> None:
        loaded = self.session.has_resource and status != PlaybackStatus.LOADING
        self.play_button.setText("Pause" if status == PlaybackStatus.PLAYING else "Play")
        self.play_button.setEnabled(status != PlaybackStatus.LOADING and self.session.path is not None)
        self.stop_button.setEnabled(loaded)
        self.skip_button.setEnabled(loaded)
        self.slider.setEnabled(loaded)

    def _on_track_chosen(self, item: QListWidgetItem) -> None:
        path = item.data(Qt.UserRole)
        self.now_playing.setText(os.path.basename(path))
        self._in_background(self.session.load, path)

    def _on_slider_released(self) -> None:
        duration = self.session.duration_seconds
        self.session.seek(self.slider.value() / SLIDER_STEPS * duration)

    def _on_skip(self) -> None:
        self.session.skip_forward(self.config_store.get_skip_seconds())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _in_background(self, func, *args) -> None:
        # Session calls may block on the decoder; keep them off the Qt thread
        threading.Thread(target=func, args=args, daemon=True).start()

    def refresh(self) -> None:
        # Scans are serialized; a refresh while one is running is dropped
        if not self._refresh_lock.acquire(blocking=False):
            return

        def _run() -> None:
            try:
                self.catalog.refresh()
            finally:
                self._refresh_lock.release()

        threading.Thread(target=_run, daemon=True).start()

    def run(self) -> int:
        self.window.show()
        self.refresh()
        try:
            return self.app.exec()
        finally:
            self.session.close()


def main() -> int:
    logging.basicConfig(
        level=os.environ.get("MUZICVIA_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
