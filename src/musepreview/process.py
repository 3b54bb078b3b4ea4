"""Async subprocess execution shared by the host automation clients."""

from __future__ import annotations

import asyncio


class CommandError(RuntimeError):
    """Raised when an external command cannot run or returns a non-zero status."""


async def run_command(
    *argv: str,
    timeout: float | None = 30.0,
    check: bool = True,
    error: type[CommandError] = CommandError,
) -> tuple[str, str, int]:
    rendered = " ".join(argv)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise error(f"{argv[0]} is not installed or not on PATH") from exc
    except PermissionError as exc:
        raise error(f"{argv[0]} could not be executed: {exc}") from exc

    try:
        if timeout is None:
            stdout_bytes, stderr_bytes = await process.communicate()
        else:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout,
            )
    except asyncio.TimeoutError as exc:
        process.kill()
        await process.wait()
        raise error(f"{rendered} timed out after {timeout}s") from exc

    stdout = stdout_bytes.decode("utf-8", errors="replace")
    stderr = stderr_bytes.decode("utf-8", errors="replace")
    returncode = int(process.returncode or 0)
    if check and returncode != 0:
        details = stderr.strip() or "no stderr output"
        raise error(f"{rendered} exited with {returncode}: {details}")
    return stdout, stderr, returncode
