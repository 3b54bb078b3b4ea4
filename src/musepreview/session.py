"""Advisory record of the most recently launched app and simulator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class SessionState:
    target_handle: str | None = None
    app_id: str | None = None

    def launched(self, *, target_handle: str, app_id: str) -> SessionState:
        return SessionState(target_handle=target_handle, app_id=app_id)

    def to_dict(self) -> dict[str, Any] | None:
        if self.target_handle is None and self.app_id is None:
            return None
        return {"targetHandle": self.target_handle, "appId": self.app_id}
