"""Host automation interfaces the orchestrator depends on."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol


class TargetLister(Protocol):
    async def list_devices(self) -> dict[str, list[dict[str, Any]]]:
        """Map runtime identifiers to ``{name, handle, state}`` device records."""
        ...


class Capturer(Protocol):
    async def screenshot(self, handle: str, destination: Path) -> None:
        ...

    async def find_window_id(self, app_id: str) -> str | None:
        ...

    async def capture_window(self, window_id: str, destination: Path) -> None:
        ...

    async def capture_frontmost(self, app_id: str, destination: Path) -> None:
        ...


class Launcher(Protocol):
    async def launch(self, handle: str, app_id: str) -> None:
        ...

    async def terminate(self, handle: str, app_id: str) -> None:
        ...

    async def is_installed(self, handle: str, app_id: str) -> bool:
        ...

    async def launch_desktop(self, app_id: str) -> None:
        ...

    async def is_registered_desktop(self, app_id: str) -> bool:
        ...

    async def open_application(self, app_id: str, *args: str) -> None:
        ...

    async def reveal(self, path: Path) -> None:
        ...
