"""Thin async wrappers around ``xcrun simctl`` commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .process import CommandError, run_command


class SimctlError(CommandError):
    """Raised when simctl is missing or returns a non-zero status."""


@dataclass(slots=True)
class SimctlClient:
    """Asynchronous helper for invoking simulator commands."""

    executable: str = "xcrun"
    command_timeout: float | None = 30.0

    async def list_devices(self) -> dict[str, list[dict[str, Any]]]:
        """Return booted and shutdown devices keyed by runtime identifier."""

        stdout = await self._exec("list", "devices", "--json")
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise SimctlError(f"simctl returned unparseable device list: {exc}") from exc

        runtimes: dict[str, list[dict[str, Any]]] = {}
        for runtime, devices in (payload.get("devices") or {}).items():
            runtimes[runtime] = [
                {
                    "name": device.get("name", ""),
                    "handle": device.get("udid", ""),
                    "state": device.get("state", ""),
                }
                for device in devices or []
            ]
        return runtimes

    async def screenshot(self, udid: str, destination: Path) -> None:
        await self._exec("io", udid, "screenshot", str(destination))

    async def launch(self, udid: str, bundle_id: str) -> None:
        await self._exec("launch", udid, bundle_id)

    async def terminate(self, udid: str, bundle_id: str) -> None:
        await self._exec("terminate", udid, bundle_id)

    async def app_container(self, udid: str, bundle_id: str) -> str:
        stdout = await self._exec("get_app_container", udid, bundle_id)
        return stdout.strip()

    async def _exec(self, *args: str) -> str:
        stdout, _, _ = await run_command(
            self.executable,
            "simctl",
            *args,
            timeout=self.command_timeout,
            error=SimctlError,
        )
        return stdout
