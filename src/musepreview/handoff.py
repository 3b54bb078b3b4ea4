"""Deliver preview sets to the MUSE Preview Maker app."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .capabilities import Launcher
from .events import log_event
from .process import CommandError
from .store import PreviewStore

GENERATE_FLAG = "--generate"


@dataclass(slots=True, frozen=True)
class HandoffResult:
    opened: bool
    revealed: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"opened": self.opened, "revealed": self.revealed}


class Handoff:
    """Writes the pending payload file, then activates the renderer or reveals the data directory."""

    def __init__(
        self,
        *,
        launcher: Launcher,
        bundle_id: str,
        pending_path: Path,
        data_directory: Path,
    ) -> None:
        self._launcher = launcher
        self.bundle_id = bundle_id
        self.pending_path = pending_path
        self.data_directory = data_directory

    def write_payload(
        self,
        store: PreviewStore,
        *,
        output_directory: str,
        export_all_sizes: bool,
        auto_generate: bool,
    ) -> Path:
        payload = {
            "previews": [preview.to_dict() for preview in store.previews],
            "options": {
                "outputDirectory": output_directory,
                "exportAllSizes": export_all_sizes,
                "autoGenerate": auto_generate,
                "language": store.settings.language,
            },
        }
        self.pending_path.parent.mkdir(parents=True, exist_ok=True)
        self.pending_path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        return self.pending_path

    async def deliver(
        self,
        store: PreviewStore,
        *,
        output_directory: str | None = None,
        export_all_sizes: bool = False,
        auto_generate: bool = False,
    ) -> HandoffResult:
        output_directory = str(Path(output_directory or store.settings.output_directory).expanduser())
        Path(output_directory).mkdir(parents=True, exist_ok=True)
        self.write_payload(
            store,
            output_directory=output_directory,
            export_all_sizes=export_all_sizes,
            auto_generate=auto_generate,
        )

        args = (GENERATE_FLAG,) if auto_generate else ()
        try:
            await self._launcher.open_application(self.bundle_id, *args)
        except CommandError as exc:
            log_event("handoff.open_failed", bundle_id=self.bundle_id, reason=str(exc))
            return HandoffResult(opened=False, revealed=await self._reveal(), error=str(exc))

        log_event("handoff.opened", bundle_id=self.bundle_id, previews=len(store.previews))
        return HandoffResult(opened=True)

    async def _reveal(self) -> str | None:
        self.data_directory.mkdir(parents=True, exist_ok=True)
        try:
            await self._launcher.reveal(self.data_directory)
        except CommandError as exc:
            log_event("handoff.reveal_failed", path=str(self.data_directory), reason=str(exc))
            return None
        log_event("handoff.revealed", path=str(self.data_directory))
        return str(self.data_directory)
