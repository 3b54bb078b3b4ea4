"""Async wrappers around the macOS automation commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .process import CommandError, run_command


class DesktopError(CommandError):
    """Raised when a desktop automation command fails."""


# Prints the CGWindowID of the first on-screen, layer-0 window owned by the
# application whose bundle identifier is passed as argv[0].
FRONT_WINDOW_SCRIPT = """
ObjC.import('AppKit');
ObjC.import('CoreGraphics');
function run(argv) {
  var apps = $.NSRunningApplication.runningApplicationsWithBundleIdentifier(argv[0]);
  if (apps.count === 0) { return ''; }
  var pid = apps.objectAtIndex(0).processIdentifier;
  var windows = ObjC.castRefToObject(
    $.CGWindowListCopyWindowInfo($.kCGWindowListOptionOnScreenOnly, $.kCGNullWindowID)
  );
  for (var i = 0; i < windows.count; i++) {
    var info = windows.objectAtIndex(i);
    if (info.objectForKey('kCGWindowOwnerPID').intValue === pid &&
        info.objectForKey('kCGWindowLayer').intValue === 0) {
      return String(info.objectForKey('kCGWindowNumber').intValue);
    }
  }
  return '';
}
"""


@dataclass(slots=True)
class DesktopClient:
    """Launches, activates and captures macOS applications."""

    command_timeout: float | None = 30.0

    async def is_registered(self, bundle_id: str) -> bool:
        stdout = await self._exec(
            "mdfind",
            f"kMDItemCFBundleIdentifier == '{bundle_id}'",
        )
        return bool(stdout.strip())

    async def launch(self, bundle_id: str) -> None:
        await self._exec("open", "-b", bundle_id)

    async def open_application(self, bundle_id: str, *args: str) -> None:
        argv = ["open", "-b", bundle_id]
        if args:
            argv.extend(["--args", *args])
        await self._exec(*argv)

    async def activate(self, bundle_id: str) -> None:
        await self._exec("osascript", "-e", f'tell application id "{bundle_id}" to activate')

    async def front_window_id(self, bundle_id: str) -> str | None:
        stdout = await self._exec("osascript", "-l", "JavaScript", "-e", FRONT_WINDOW_SCRIPT, bundle_id)
        window_id = stdout.strip()
        return window_id if window_id.isdigit() else None

    async def capture_window(self, window_id: str, destination: Path) -> None:
        await self._exec("screencapture", "-x", "-o", "-l", window_id, str(destination))

    async def capture_screen(self, destination: Path) -> None:
        await self._exec("screencapture", "-x", str(destination))

    async def reveal(self, path: Path) -> None:
        await self._exec("open", str(path))

    async def _exec(self, *argv: str) -> str:
        stdout, _, _ = await run_command(*argv, timeout=self.command_timeout, error=DesktopError)
        return stdout
