from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from musepreview.config import ServiceConfig, parse_config
from musepreview.process import CommandError
from musepreview.tools import PreviewTools

IOS_RUNTIME = "com.apple.CoreSimulator.SimRuntime.iOS-17-2"
WATCH_RUNTIME = "com.apple.CoreSimulator.SimRuntime.watchOS-10-2"


def device(name: str, handle: str, state: str = "Booted") -> dict[str, str]:
    return {"name": name, "handle": handle, "state": state}


class FakeHost:
    """In-memory stand-in for simctl and the macOS automation tools."""

    def __init__(
        self,
        *,
        runtimes: dict[str, list[dict[str, Any]]] | None = None,
        installed: set[tuple[str, str]] | None = None,
        desktop_apps: set[str] | None = None,
    ) -> None:
        self.runtimes = runtimes if runtimes is not None else {}
        self.installed = installed or set()
        self.desktop_apps = desktop_apps or set()
        self.calls: list[tuple[Any, ...]] = []
        self.list_error: CommandError | None = None
        self.launch_error: CommandError | None = None
        self.terminate_error: CommandError | None = None
        self.desktop_probe_error: CommandError | None = None
        self.open_error: CommandError | None = None
        self.reveal_error: CommandError | None = None
        self.screenshot_failures: set[int] = set()
        self.screenshot_without_file: set[int] = set()
        self.screenshot_count = 0
        self.window_id: str | None = "4242"
        self.window_capture_writes = True
        self.frontmost_error: CommandError | None = None

    async def list_devices(self) -> dict[str, list[dict[str, Any]]]:
        self.calls.append(("list_devices",))
        await asyncio.sleep(0)
        if self.list_error:
            raise self.list_error
        return self.runtimes

    async def screenshot(self, handle: str, destination: Path) -> None:
        self.screenshot_count += 1
        self.calls.append(("screenshot", handle, destination.name))
        await asyncio.sleep(0)
        if self.screenshot_count in self.screenshot_failures:
            raise CommandError(f"simctl io {handle} screenshot failed")
        if self.screenshot_count not in self.screenshot_without_file:
            destination.write_bytes(b"\x89PNG")

    async def find_window_id(self, app_id: str) -> str | None:
        self.calls.append(("find_window_id", app_id))
        return self.window_id

    async def capture_window(self, window_id: str, destination: Path) -> None:
        self.calls.append(("capture_window", window_id))
        if self.window_capture_writes:
            destination.write_bytes(b"\x89PNG")

    async def capture_frontmost(self, app_id: str, destination: Path) -> None:
        self.calls.append(("capture_frontmost", app_id))
        if self.frontmost_error:
            raise self.frontmost_error
        destination.write_bytes(b"\x89PNG")

    async def launch(self, handle: str, app_id: str) -> None:
        self.calls.append(("launch", handle, app_id))
        if self.launch_error:
            raise self.launch_error

    async def terminate(self, handle: str, app_id: str) -> None:
        self.calls.append(("terminate", handle, app_id))
        if self.terminate_error:
            raise self.terminate_error

    async def is_installed(self, handle: str, app_id: str) -> bool:
        self.calls.append(("is_installed", handle, app_id))
        return (handle, app_id) in self.installed

    async def launch_desktop(self, app_id: str) -> None:
        self.calls.append(("launch_desktop", app_id))
        if self.launch_error:
            raise self.launch_error

    async def is_registered_desktop(self, app_id: str) -> bool:
        self.calls.append(("is_registered_desktop", app_id))
        if self.desktop_probe_error:
            raise self.desktop_probe_error
        return app_id in self.desktop_apps

    async def open_application(self, app_id: str, *args: str) -> None:
        self.calls.append(("open_application", app_id, *args))
        if self.open_error:
            raise self.open_error

    async def reveal(self, path: Path) -> None:
        self.calls.append(("reveal", str(path)))
        if self.reveal_error:
            raise self.reveal_error

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost(
        runtimes={
            IOS_RUNTIME: [
                device("iPad Air (5th generation)", "IPAD-1"),
                device("iPhone 15 Pro Max", "PROMAX-1"),
                device("iPhone 15", "PHONE-1"),
                device("iPhone SE (3rd generation)", "SE-1", state="Shutdown"),
            ],
            WATCH_RUNTIME: [device("Apple Watch Series 9 (45mm)", "WATCH-1")],
        }
    )


@pytest.fixture
def config(tmp_path: Path) -> ServiceConfig:
    return parse_config(
        {
            "settings": {
                "data_directory": str(tmp_path / "data"),
                "delays": {"launch": 1.5, "screen": 0.5},
                "defaults": {"output_directory": str(tmp_path / "out")},
            }
        }
    )


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def tools(config: ServiceConfig, host: FakeHost, sleeper: SleepRecorder) -> PreviewTools:
    return PreviewTools.build(config, host, sleep=sleeper)


@pytest.fixture
def screenshot(tmp_path: Path) -> Path:
    path = tmp_path / "shot.png"
    path.write_bytes(b"\x89PNG")
    return path
