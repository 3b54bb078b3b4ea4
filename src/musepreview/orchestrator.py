"""Capture workflows: resolve a target, launch, wait, capture and persist."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Sequence

from .capabilities import Capturer, Launcher
from .config import DelaySettings
from .devices import (
    DESKTOP_DEVICE_ID,
    CaptureTarget,
    DeviceManager,
    map_target_to_device_id,
    select_default_target,
)
from .errors import (
    AppNotFound,
    CaptureFailed,
    NoTargetAvailable,
    PreviewError,
    TargetNotFound,
)
from .events import log_event
from .handoff import Handoff, HandoffResult
from .platforms import Platform, detect_platform
from .process import CommandError
from .session import SessionState
from .state_machine import (
    AppCaptureMachine,
    DesktopAppMachine,
    SimulatorAppMachine,
    Sleep,
    capture_simulator_screen,
)
from .store import PreviewRepository, PreviewSet

PALETTE_CYCLE: tuple[str, ...] = ("ocean", "sunset", "forest", "midnight")
AUTO_PLATFORM = "auto"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(slots=True, frozen=True)
class ScreenRequest:
    title: str
    subtitle: str
    delay: float | None = None
    palette_id: str | None = None


@dataclass(slots=True, frozen=True)
class SkippedScreen:
    index: int
    title: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "title": self.title, "error": self.error}


@dataclass(slots=True)
class CaptureReport:
    previews: list[PreviewSet]
    target_name: str
    platform: Platform
    device_id: str
    session: SessionState
    total_previews: int
    skipped: list[SkippedScreen] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "captured": len(self.previews),
            "target": self.target_name,
            "platform": self.platform.value,
            "deviceId": self.device_id,
            "previews": [preview.to_dict() for preview in self.previews],
            "skipped": [screen.to_dict() for screen in self.skipped],
            "totalPreviews": self.total_previews,
            "session": self.session.to_dict(),
        }


@dataclass(slots=True)
class WorkflowReport:
    platform: Platform
    device_id: str
    target_name: str
    session: SessionState
    cleared_previews: int
    deleted_screenshots: int
    capture: CaptureReport | None = None
    handoff: HandoffResult | None = None

    @property
    def needs_copy(self) -> bool:
        return self.capture is None


class CaptureOrchestrator:
    """Sequences launch, wait and capture steps against simulators or Mac apps.

    Expected failures are raised as ``PreviewError`` subclasses; the tool layer
    turns them into structured results. Nothing here retries.
    """

    def __init__(
        self,
        *,
        device_manager: DeviceManager,
        capturer: Capturer,
        launcher: Launcher,
        repository: PreviewRepository,
        handoff: Handoff,
        screenshots_directory: Path,
        delays: DelaySettings,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._device_manager = device_manager
        self._capturer = capturer
        self._launcher = launcher
        self._repository = repository
        self._handoff = handoff
        self._screenshots_directory = screenshots_directory
        self._delays = delays
        self._sleep = sleep
        self._clock = clock

    async def resolve_target(self, target_handle: str | None = None) -> CaptureTarget:
        targets = await self._device_manager.discover()
        if target_handle:
            for target in targets:
                if target.handle == target_handle:
                    return target
            raise TargetNotFound(
                f"Simulator not booted: {target_handle}",
                targetHandle=target_handle,
            )
        target = select_default_target(targets)
        if target is None:
            raise NoTargetAvailable("No booted iOS simulator found")
        return target

    async def resolve_platform(self, app_id: str, platform: str | None = AUTO_PLATFORM) -> Platform:
        if platform and platform != AUTO_PLATFORM:
            return Platform(platform)
        detected = await detect_platform(
            app_id,
            launcher=self._launcher,
            device_manager=self._device_manager,
        )
        if detected is Platform.UNKNOWN:
            raise AppNotFound(
                f"App not found on this Mac or any booted simulator: {app_id}",
                appId=app_id,
            )
        return detected

    async def capture_once(
        self,
        *,
        title: str,
        subtitle: str,
        target_handle: str | None = None,
        device_id: str | None = None,
        palette_id: str | None = None,
        session: SessionState = SessionState(),
    ) -> CaptureReport:
        target = await self.resolve_target(target_handle)
        destination = self._output_path(target.name)
        await capture_simulator_screen(self._capturer, target, destination)
        log_event("capture.success", target=target.name, path=str(destination))

        resolved_device = device_id or map_target_to_device_id(target.name)
        preview, total = self._repository.create(
            screenshot_path=str(destination),
            title=title,
            subtitle=subtitle,
            device_id=resolved_device,
            palette_id=palette_id,
        )
        return CaptureReport(
            previews=[preview],
            target_name=target.name,
            platform=Platform.MOBILE,
            device_id=preview.device_id or resolved_device,
            session=session,
            total_previews=total,
        )

    async def launch_and_capture(
        self,
        *,
        app_id: str,
        title: str,
        subtitle: str,
        platform: str | None = AUTO_PLATFORM,
        target_handle: str | None = None,
        device_id: str | None = None,
        palette_id: str | None = None,
        delay: float | None = None,
        session: SessionState = SessionState(),
    ) -> CaptureReport:
        resolved, target = await self._resolve_launch(app_id, platform, target_handle)
        machine = self._machine(app_id, resolved, target, delay)
        session = await self._launch(machine, session)

        destination = self._output_path(machine.target_name)
        try:
            await machine.capture(destination)
        except PreviewError as exc:
            exc.session = session
            raise
        log_event("capture.success", target=machine.target_name, path=str(destination))

        resolved_device = self._device_for(resolved, machine.target_name, device_id)
        preview, total = self._repository.create(
            screenshot_path=str(destination),
            title=title,
            subtitle=subtitle,
            device_id=resolved_device,
            palette_id=palette_id,
        )
        return CaptureReport(
            previews=[preview],
            target_name=machine.target_name,
            platform=resolved,
            device_id=resolved_device,
            session=session,
            total_previews=total,
        )

    async def capture_app_screens(
        self,
        *,
        app_id: str,
        screens: Sequence[ScreenRequest],
        platform: str | None = AUTO_PLATFORM,
        target_handle: str | None = None,
        device_id: str | None = None,
        launch_delay: float | None = None,
        session: SessionState = SessionState(),
    ) -> CaptureReport:
        if not screens:
            raise ValueError("At least one screen is required")
        resolved, target = await self._resolve_launch(app_id, platform, target_handle)
        return await self._capture_screens(
            app_id=app_id,
            platform=resolved,
            target=target,
            screens=screens,
            device_id=device_id,
            launch_delay=launch_delay,
            session=session,
            cycle_palettes=False,
        )

    def reset(self) -> tuple[int, int]:
        """Clear persisted previews and delete captured screenshot files."""

        cleared = self._repository.clear()
        deleted = 0
        if self._screenshots_directory.exists():
            for path in self._screenshots_directory.glob("*.png"):
                path.unlink(missing_ok=True)
                deleted += 1
        log_event("store.reset", cleared=cleared, deleted=deleted)
        return cleared, deleted

    async def create_app_previews(
        self,
        *,
        app_id: str,
        screens: Sequence[ScreenRequest] | None = None,
        platform: str | None = AUTO_PLATFORM,
        target_handle: str | None = None,
        device_id: str | None = None,
        launch_delay: float | None = None,
        export_all_sizes: bool = False,
        session: SessionState = SessionState(),
    ) -> WorkflowReport:
        cleared, deleted = self.reset()
        resolved, target = await self._resolve_launch(app_id, platform, target_handle)
        target_name = target.name if target is not None else app_id
        report = WorkflowReport(
            platform=resolved,
            device_id=self._device_for(resolved, target_name, device_id),
            target_name=target_name,
            session=session,
            cleared_previews=cleared,
            deleted_screenshots=deleted,
        )
        if not screens:
            log_event("workflow.copy_requested", app_id=app_id, platform=resolved.value)
            return report

        report.capture = await self._capture_screens(
            app_id=app_id,
            platform=resolved,
            target=target,
            screens=screens,
            device_id=device_id,
            launch_delay=launch_delay,
            session=session,
            cycle_palettes=True,
        )
        report.session = report.capture.session
        report.handoff = await self._handoff.deliver(
            self._repository.load(),
            export_all_sizes=export_all_sizes,
            auto_generate=True,
        )
        return report

    async def _capture_screens(
        self,
        *,
        app_id: str,
        platform: Platform,
        target: CaptureTarget | None,
        screens: Sequence[ScreenRequest],
        device_id: str | None,
        launch_delay: float | None,
        session: SessionState,
        cycle_palettes: bool,
    ) -> CaptureReport:
        machine = self._machine(app_id, platform, target, launch_delay)
        session = await self._launch(machine, session)
        resolved_device = self._device_for(platform, machine.target_name, device_id)

        previews: list[PreviewSet] = []
        skipped: list[SkippedScreen] = []
        total = 0
        for index, screen in enumerate(screens):
            if index > 0:
                await self._sleep(self._delays.screen if screen.delay is None else screen.delay)

            destination = self._output_path(machine.target_name)
            try:
                await machine.capture(destination)
            except CaptureFailed as exc:
                log_event(
                    "screens.skipped",
                    app_id=app_id,
                    index=index + 1,
                    reason=str(exc),
                )
                skipped.append(SkippedScreen(index=index + 1, title=screen.title, error=str(exc)))
                continue

            palette_id = screen.palette_id
            if palette_id is None and cycle_palettes:
                palette_id = PALETTE_CYCLE[index % len(PALETTE_CYCLE)]
            preview, total = self._repository.create(
                screenshot_path=str(destination),
                title=screen.title,
                subtitle=screen.subtitle,
                device_id=resolved_device,
                palette_id=palette_id,
            )
            previews.append(preview)

        log_event(
            "screens.completed",
            app_id=app_id,
            captured=len(previews),
            requested=len(screens),
        )
        if not previews:
            error = CaptureFailed(
                f"None of the {len(screens)} screen(s) of {app_id} were captured",
                target=machine.target_name,
                skipped=[screen.to_dict() for screen in skipped],
            )
            error.session = session
            raise error

        return CaptureReport(
            previews=previews,
            target_name=machine.target_name,
            platform=platform,
            device_id=resolved_device,
            session=session,
            total_previews=total,
            skipped=skipped,
        )

    async def _resolve_launch(
        self,
        app_id: str,
        platform: str | None,
        target_handle: str | None,
    ) -> tuple[Platform, CaptureTarget | None]:
        resolved = await self.resolve_platform(app_id, platform)
        if resolved is Platform.DESKTOP:
            return resolved, None
        return resolved, await self._resolve_app_target(app_id, target_handle)

    async def _resolve_app_target(self, app_id: str, target_handle: str | None) -> CaptureTarget:
        if target_handle:
            return await self.resolve_target(target_handle)

        targets = await self._device_manager.discover()
        if not targets:
            raise NoTargetAvailable("No booted iOS simulator found")
        for target in targets:
            try:
                if await self._launcher.is_installed(target.handle, app_id):
                    return target
            except CommandError as exc:
                log_event("target.probe_failed", target=target.name, reason=str(exc))
        return targets[0]

    def _machine(
        self,
        app_id: str,
        platform: Platform,
        target: CaptureTarget | None,
        launch_delay: float | None,
    ) -> AppCaptureMachine:
        delay = self._delays.launch if launch_delay is None else launch_delay
        common = {
            "app_id": app_id,
            "launcher": self._launcher,
            "capturer": self._capturer,
            "launch_delay": delay,
            "sleep": self._sleep,
        }
        if platform is Platform.DESKTOP or target is None:
            return DesktopAppMachine(**common)
        return SimulatorAppMachine(target=target, **common)

    async def _launch(self, machine: AppCaptureMachine, session: SessionState) -> SessionState:
        await machine.prepare()
        if isinstance(machine, SimulatorAppMachine):
            return session.launched(target_handle=machine.target.handle, app_id=machine.app_id)
        return session

    @staticmethod
    def _device_for(platform: Platform, target_name: str, override: str | None) -> str:
        if override:
            return override
        if platform is Platform.DESKTOP:
            return DESKTOP_DEVICE_ID
        return map_target_to_device_id(target_name)

    def _output_path(self, target_name: str) -> Path:
        self._screenshots_directory.mkdir(parents=True, exist_ok=True)
        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", target_name).strip("_") or "capture"
        stamp = self._clock().strftime("%Y%m%d-%H%M%S-%f")
        path = self._screenshots_directory / f"{safe_name}_{stamp}.png"
        counter = 1
        while path.exists():
            path = self._screenshots_directory / f"{safe_name}_{stamp}-{counter}.png"
            counter += 1
        return path
