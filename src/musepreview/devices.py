"""Simulator discovery and device-size classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from .capabilities import TargetLister
from .errors import DiscoveryUnavailable
from .events import log_event
from .process import CommandError

IOS_RUNTIME_PATTERN = re.compile(r"SimRuntime\.iOS-(?P<version>[\d-]+)$")
BOOTED_STATE = "Booted"

DESKTOP_DEVICE_ID = "mac"
FALLBACK_TABLET_ID = "ipad_12_9"
FALLBACK_PHONE_ID = "iphone_6_7"


@dataclass(slots=True, frozen=True)
class CaptureTarget:
    name: str
    handle: str
    os_version: str
    priority: int = 0


def _contains(*needles: str) -> Callable[[str], bool]:
    lowered = tuple(needle.lower() for needle in needles)
    return lambda name: any(needle in name.lower() for needle in lowered)


def _all_of(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda name: all(predicate(name) for predicate in predicates)


# First match wins.
DEVICE_RULES: tuple[tuple[Callable[[str], bool], str], ...] = (
    (_contains("iPhone XS Max", "iPhone 11 Pro Max"), "iphone_6_5"),
    (_all_of(_contains("Pro Max"), _contains("iPhone 16", "iPhone 17")), "iphone_6_9"),
    (_contains("iPhone 8 Plus", "iPhone 7 Plus", "iPhone 6s Plus", "iPhone SE"), "iphone_5_5"),
    (_contains("Pro Max", "Plus"), "iphone_6_7"),
    (_contains("iPhone XR", "iPhone 11"), "iphone_6_5"),
    (_contains("iPad Pro (12.9-inch)", "iPad Pro 13-inch", "iPad Air 13-inch"), "ipad_12_9"),
    (_contains("iPad Pro (11-inch)", "iPad Pro 11-inch", "iPad Air", "iPad mini"), "ipad_11"),
    (_contains("iPad"), FALLBACK_TABLET_ID),
)


def map_target_to_device_id(name: str) -> str:
    """Map a simulator name to a canonical device-size identifier."""

    for predicate, device_id in DEVICE_RULES:
        if predicate(name):
            return device_id
    return FALLBACK_PHONE_ID


def target_priority(name: str) -> int:
    lowered = name.lower()
    if "iphone" in lowered:
        if "pro max" in lowered or "plus" in lowered:
            return 4
        if "pro" in lowered:
            return 3
        return 2
    if "ipad" in lowered:
        return 1
    return 0


def select_default_target(targets: list[CaptureTarget]) -> CaptureTarget | None:
    """Highest priority wins; ties keep discovery order."""

    best: CaptureTarget | None = None
    for target in targets:
        if best is None or target.priority > best.priority:
            best = target
    return best


class DeviceManager:
    """Discovers booted iOS simulators via the target lister."""

    def __init__(self, lister: TargetLister) -> None:
        self._lister = lister

    async def discover(self) -> list[CaptureTarget]:
        try:
            runtimes = await self._lister.list_devices()
        except CommandError as exc:
            log_event("discovery.failed", reason=str(exc))
            raise DiscoveryUnavailable(f"Cannot list simulators: {exc}") from exc

        targets: list[CaptureTarget] = []
        for runtime, devices in runtimes.items():
            match = IOS_RUNTIME_PATTERN.search(runtime)
            if match is None:
                continue
            os_version = match.group("version").replace("-", ".")
            for device in devices:
                if device.get("state") != BOOTED_STATE:
                    continue
                name = device.get("name", "")
                targets.append(
                    CaptureTarget(
                        name=name,
                        handle=device.get("handle", ""),
                        os_version=os_version,
                        priority=target_priority(name),
                    )
                )
        log_event("discovery.completed", targets=len(targets))
        return targets
