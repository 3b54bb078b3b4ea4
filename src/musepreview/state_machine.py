"""State machines sequencing app launch and screen capture."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from enum import Enum, auto
from pathlib import Path
from typing import Awaitable, Callable

from .capabilities import Capturer, Launcher
from .devices import CaptureTarget
from .errors import CaptureFailed, CaptureProducedNoFile, LaunchFailed
from .events import log_event
from .process import CommandError

Sleep = Callable[[float], Awaitable[None]]


class CapturePhase(Enum):
    IDLE = auto()
    LAUNCHING = auto()
    LAUNCHED = auto()
    CAPTURING = auto()
    ERROR = auto()


async def capture_simulator_screen(
    capturer: Capturer,
    target: CaptureTarget,
    destination: Path,
) -> Path:
    """Screenshot a simulator; the file on disk is the only success signal trusted."""

    try:
        await capturer.screenshot(target.handle, destination)
    except CommandError as exc:
        raise CaptureFailed(
            f"Screenshot of {target.name} failed: {exc}",
            target=target.name,
            path=str(destination),
        ) from exc
    if not destination.exists():
        raise CaptureProducedNoFile(
            f"Screenshot of {target.name} produced no file at {destination}",
            target=target.name,
            path=str(destination),
        )
    return destination


class AppCaptureMachine:
    """Launch once, then capture any number of screens of the running app."""

    def __init__(
        self,
        *,
        app_id: str,
        launcher: Launcher,
        capturer: Capturer,
        launch_delay: float,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.app_id = app_id
        self._launcher = launcher
        self._capturer = capturer
        self._launch_delay = launch_delay
        self._sleep = sleep
        self.phase = CapturePhase.IDLE

    @property
    def target_name(self) -> str:
        return self.app_id

    async def prepare(self) -> None:
        if self.phase is not CapturePhase.IDLE:
            return
        self.phase = CapturePhase.LAUNCHING
        try:
            await self._launch()
        except CommandError as exc:
            self.phase = CapturePhase.ERROR
            log_event("launch.failed", app_id=self.app_id, target=self.target_name, reason=str(exc))
            raise LaunchFailed(
                f"Failed to launch {self.app_id} on {self.target_name}: {exc}",
                target=self.target_name,
                appId=self.app_id,
            ) from exc
        log_event("launch.success", app_id=self.app_id, target=self.target_name)
        await self._sleep(self._launch_delay)
        self.phase = CapturePhase.LAUNCHED

    async def capture(self, destination: Path) -> Path:
        if self.phase is not CapturePhase.LAUNCHED:
            raise RuntimeError("App must be launched before capture")

        self.phase = CapturePhase.CAPTURING
        try:
            return await self._shoot(destination)
        finally:
            self.phase = CapturePhase.LAUNCHED

    async def _launch(self) -> None:
        raise NotImplementedError

    async def _shoot(self, destination: Path) -> Path:
        raise NotImplementedError


class SimulatorAppMachine(AppCaptureMachine):
    """Terminate-then-launch on a simulator for a clean state, then screenshot it."""

    def __init__(self, *, target: CaptureTarget, **kwargs) -> None:
        super().__init__(**kwargs)
        self.target = target

    @property
    def target_name(self) -> str:
        return self.target.name

    async def _launch(self) -> None:
        # The app may simply not be running yet.
        with suppress(CommandError):
            await self._launcher.terminate(self.target.handle, self.app_id)
        await self._launcher.launch(self.target.handle, self.app_id)

    async def _shoot(self, destination: Path) -> Path:
        return await capture_simulator_screen(self._capturer, self.target, destination)


class DesktopAppMachine(AppCaptureMachine):
    """Launch a Mac app and capture its frontmost window.

    When no window id is found or the window capture writes nothing, the app is
    brought to the front and the whole screen is captured, so other windows and
    the menu bar may appear in the image.
    """

    async def _launch(self) -> None:
        await self._launcher.launch_desktop(self.app_id)

    async def _shoot(self, destination: Path) -> Path:
        window_id: str | None = None
        try:
            window_id = await self._capturer.find_window_id(self.app_id)
        except CommandError as exc:
            log_event("capture.window_lookup_failed", app_id=self.app_id, reason=str(exc))

        if window_id:
            try:
                await self._capturer.capture_window(window_id, destination)
            except CommandError as exc:
                log_event("capture.window_failed", app_id=self.app_id, reason=str(exc))
            if destination.exists():
                return destination

        log_event("capture.window_fallback", app_id=self.app_id)
        try:
            await self._capturer.capture_frontmost(self.app_id, destination)
        except CommandError as exc:
            raise CaptureFailed(
                f"Window capture of {self.app_id} failed: {exc}",
                target=self.app_id,
                path=str(destination),
            ) from exc
        if not destination.exists():
            raise CaptureProducedNoFile(
                f"Window capture of {self.app_id} produced no file at {destination}",
                target=self.app_id,
                path=str(destination),
            )
        return destination
