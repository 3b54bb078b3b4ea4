"""macOS host implementation of the automation interfaces."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .desktop import DesktopClient
from .simctl import SimctlClient, SimctlError


class MacHost:
    """Backs ``TargetLister``, ``Capturer`` and ``Launcher`` with simctl and macOS tools."""

    def __init__(
        self,
        *,
        simctl: SimctlClient | None = None,
        desktop: DesktopClient | None = None,
        command_timeout: float | None = 30.0,
    ) -> None:
        self._simctl = simctl or SimctlClient(command_timeout=command_timeout)
        self._desktop = desktop or DesktopClient(command_timeout=command_timeout)

    async def list_devices(self) -> dict[str, list[dict[str, Any]]]:
        return await self._simctl.list_devices()

    async def screenshot(self, handle: str, destination: Path) -> None:
        await self._simctl.screenshot(handle, destination)

    async def find_window_id(self, app_id: str) -> str | None:
        return await self._desktop.front_window_id(app_id)

    async def capture_window(self, window_id: str, destination: Path) -> None:
        await self._desktop.capture_window(window_id, destination)

    async def capture_frontmost(self, app_id: str, destination: Path) -> None:
        await self._desktop.activate(app_id)
        await self._desktop.capture_screen(destination)

    async def launch(self, handle: str, app_id: str) -> None:
        await self._simctl.launch(handle, app_id)

    async def terminate(self, handle: str, app_id: str) -> None:
        await self._simctl.terminate(handle, app_id)

    async def is_installed(self, handle: str, app_id: str) -> bool:
        try:
            container = await self._simctl.app_container(handle, app_id)
        except SimctlError:
            return False
        return bool(container)

    async def launch_desktop(self, app_id: str) -> None:
        await self._desktop.launch(app_id)

    async def is_registered_desktop(self, app_id: str) -> bool:
        return await self._desktop.is_registered(app_id)

    async def open_application(self, app_id: str, *args: str) -> None:
        await self._desktop.open_application(app_id, *args)

    async def reveal(self, path: Path) -> None:
        await self._desktop.reveal(path)
