"""Decide whether an application identifier belongs to the Mac or a simulator."""

from __future__ import annotations

from enum import Enum

from .capabilities import Launcher
from .devices import DeviceManager
from .errors import PreviewError
from .events import log_event
from .process import CommandError


class Platform(str, Enum):
    DESKTOP = "macos"
    MOBILE = "ios"
    UNKNOWN = "unknown"


async def detect_platform(
    app_id: str,
    *,
    launcher: Launcher,
    device_manager: DeviceManager,
) -> Platform:
    """Probe the Mac first, then every booted simulator; probe failures count as "not found"."""

    try:
        if await launcher.is_registered_desktop(app_id):
            log_event("platform.detected", app_id=app_id, platform=Platform.DESKTOP.value)
            return Platform.DESKTOP
    except CommandError as exc:
        log_event("platform.desktop_probe_failed", app_id=app_id, reason=str(exc))

    try:
        targets = await device_manager.discover()
    except PreviewError as exc:
        log_event("platform.mobile_probe_failed", app_id=app_id, reason=str(exc))
        targets = []

    for target in targets:
        try:
            installed = await launcher.is_installed(target.handle, app_id)
        except CommandError as exc:
            log_event(
                "platform.mobile_probe_failed",
                app_id=app_id,
                target=target.name,
                reason=str(exc),
            )
            continue
        if installed:
            log_event("platform.detected", app_id=app_id, platform=Platform.MOBILE.value)
            return Platform.MOBILE

    log_event("platform.detected", app_id=app_id, platform=Platform.UNKNOWN.value)
    return Platform.UNKNOWN
