"""Shared error codes and user-facing messages."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
SCAN_IO_ERROR = "SCAN_IO_ERROR"
SCAN_FAILED = "SCAN_FAILED"
DECODE_LOAD_ERROR = "DECODE_LOAD_ERROR"
PLAYBACK_ERROR = "PLAYBACK_ERROR"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Storage permission is required to access music files.",
    SCAN_IO_ERROR: "Some folders could not be read and were skipped.",
    SCAN_FAILED: "Failed to scan music files from storage.",
    DECODE_LOAD_ERROR: "Failed to load audio file.",
    PLAYBACK_ERROR: "Playback failed.",
}
