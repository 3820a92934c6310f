"""Storage permission gate.

Picks the capability request plan for the running platform from a small
decision table keyed by ``(platform family, version tier)`` and walks the
plan's fallback chain until one capability is granted.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Callable, Optional

from errors import PERMISSION_DENIED
from interfaces import CapabilityRequester
from models import CapabilityKind, CapabilityResult, PermissionState, PlatformInfo

logger = logging.getLogger(__name__)

NoticeCallback = Callable[[str, str], None]

ANDROID = "android"
OTHER = "other"

TIER_MEDIA = "media"
TIER_SCOPED = "scoped"
TIER_LEGACY = "legacy"
TIER_ANY = "any"

PERMISSION_PLANS: dict[tuple[str, str], tuple[CapabilityKind, ...]] = {
    (ANDROID, TIER_MEDIA): (CapabilityKind.READ_MEDIA_AUDIO,),
    (ANDROID, TIER_SCOPED): (
        CapabilityKind.MANAGE_EXTERNAL_STORAGE,
        CapabilityKind.READ_EXTERNAL_STORAGE,
    ),
    (ANDROID, TIER_LEGACY): (CapabilityKind.READ_EXTERNAL_STORAGE,),
    (OTHER, TIER_ANY): (CapabilityKind.MEDIA_LIBRARY,),
}

DENIAL_MESSAGES = {
    CapabilityKind.READ_MEDIA_AUDIO: "Audio files permission is required to access music files.",
    CapabilityKind.MANAGE_EXTERNAL_STORAGE: "Storage permission is required to access music files.",
    CapabilityKind.READ_EXTERNAL_STORAGE: "Storage permission is required to access music files.",
    CapabilityKind.MEDIA_LIBRARY: "Media library permission is required to access music files.",
}


def version_tier(platform: PlatformInfo) -> tuple[str, str]:
    if platform.family != ANDROID:
        return OTHER, TIER_ANY
    if platform.version >= 33:
        return ANDROID, TIER_MEDIA
    if platform.version >= 30:
        return ANDROID, TIER_SCOPED
    return ANDROID, TIER_LEGACY


def plan_for(platform: PlatformInfo) -> tuple[CapabilityKind, ...]:
    return PERMISSION_PLANS[version_tier(platform)]


def detect_platform() -> PlatformInfo:
    get_api_level = getattr(sys, "getandroidapilevel", None)
    if get_api_level is not None:
        return PlatformInfo(family=ANDROID, version=int(get_api_level()))
    return PlatformInfo(family=sys.platform)


class StorageAccessRequester:
    """Capability requester for desktop hosts: granted when storage is readable."""

    def __init__(self, storage_root: str) -> None:
        self._storage_root = storage_root

    def request(self, kind: CapabilityKind) -> CapabilityResult:
        if not os.path.isdir(self._storage_root):
            return CapabilityResult.UNAVAILABLE
        if os.access(self._storage_root, os.R_OK | os.X_OK):
            return CapabilityResult.GRANTED
        return CapabilityResult.DENIED


class StoragePermissionGate:
    def __init__(
        self,
        requester: CapabilityRequester,
        platform: PlatformInfo,
        on_notice: Optional[NoticeCallback] = None,
    ) -> None:
        self._requester = requester
        self._platform = platform
        self._on_notice = on_notice
        self._state = PermissionState.UNKNOWN

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def plan(self) -> tuple[CapabilityKind, ...]:
        return plan_for(self._platform)

    def request_access(self) -> PermissionState:
        plan = self.plan
        for kind in plan:
            result = self._safe_request(kind)
            logger.info("Capability %s -> %s", kind.value, result.value)
            if result == CapabilityResult.GRANTED:
                self._state = PermissionState.GRANTED
                return self._state

        self._state = PermissionState.DENIED
        if self._on_notice:
            self._on_notice(PERMISSION_DENIED, DENIAL_MESSAGES[plan[-1]])
        return self._state

    def _safe_request(self, kind: CapabilityKind) -> CapabilityResult:
        try:
            return CapabilityResult(self._requester.request(kind))
        except Exception as exc:
            logger.warning("Capability request %s failed: %s", kind.value, exc)
            return CapabilityResult.DENIED
