"""Durable collection of preview sets and user settings."""

from __future__ import annotations

import json
import os
import tempfile
import time
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import NotFound, StoreCorrupted
from .events import log_event

LANGUAGES: tuple[str, ...] = ("en", "ja")


@dataclass(slots=True, frozen=True)
class PreviewSettings:
    default_device_id: str = "iphone_6_7"
    default_palette_id: str = "ocean"
    output_directory: str = str(Path("~/Desktop/Previews").expanduser())
    language: str = "en"

    def to_dict(self) -> dict[str, str]:
        return {
            "defaultDeviceId": self.default_device_id,
            "defaultPaletteId": self.default_palette_id,
            "outputDirectory": self.output_directory,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any], defaults: PreviewSettings) -> PreviewSettings:
        # Fields added after a store was first written fall back to the defaults.
        return cls(
            default_device_id=raw.get("defaultDeviceId")
            or raw.get("defaultDeviceType")
            or defaults.default_device_id,
            default_palette_id=raw.get("defaultPaletteId") or defaults.default_palette_id,
            output_directory=raw.get("outputDirectory") or defaults.output_directory,
            language=raw.get("language") or defaults.language,
        )


@dataclass(slots=True)
class PreviewSet:
    id: str
    screenshot_path: str
    title: str
    subtitle: str
    device_id: str | None
    palette_id: str | None
    created_at: str

    @classmethod
    def create(
        cls,
        *,
        screenshot_path: str,
        title: str,
        subtitle: str,
        device_id: str | None,
        palette_id: str | None,
    ) -> PreviewSet:
        return cls(
            id=generate_preview_id(),
            screenshot_path=screenshot_path,
            title=title,
            subtitle=subtitle,
            device_id=device_id,
            palette_id=palette_id,
            created_at=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "screenshotPath": self.screenshot_path,
            "title": self.title,
            "subtitle": self.subtitle,
            "deviceId": self.device_id,
            "paletteId": self.palette_id,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PreviewSet:
        return cls(
            id=raw["id"],
            screenshot_path=raw["screenshotPath"],
            title=raw["title"],
            subtitle=raw["subtitle"],
            device_id=raw.get("deviceId") or raw.get("deviceType"),
            palette_id=raw.get("paletteId"),
            created_at=raw["createdAt"],
        )


@dataclass(slots=True)
class PreviewStore:
    previews: list[PreviewSet] = field(default_factory=list)
    settings: PreviewSettings = field(default_factory=PreviewSettings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "previews": [preview.to_dict() for preview in self.previews],
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any], defaults: PreviewSettings) -> PreviewStore:
        return cls(
            previews=[PreviewSet.from_dict(item) for item in raw.get("previews") or []],
            settings=PreviewSettings.from_dict(raw.get("settings") or {}, defaults),
        )

    def find(self, preview_id: str) -> PreviewSet | None:
        return next((preview for preview in self.previews if preview.id == preview_id), None)


def generate_preview_id() -> str:
    return f"preview_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


_UPDATABLE_FIELDS = ("title", "subtitle", "screenshot_path", "device_id", "palette_id")
_SETTINGS_FIELDS = tuple(f.name for f in fields(PreviewSettings))


class PreviewRepository:
    """Load-mutate-save access to the persisted ``PreviewStore``.

    Every mutating call reads the file, applies the change in memory and writes
    the whole document back. This is only safe with a single writer.
    """

    def __init__(self, path: Path, *, defaults: PreviewSettings | None = None) -> None:
        self.path = path
        self.defaults = defaults or PreviewSettings()

    def load(self) -> PreviewStore:
        if not self.path.exists():
            return PreviewStore(settings=self.defaults)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise TypeError("top-level value is not an object")
            return PreviewStore.from_dict(raw, self.defaults)
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            log_event("store.corrupted", path=str(self.path), reason=str(exc))
            raise StoreCorrupted(
                f"Preview store at {self.path} could not be parsed: {exc}",
                path=str(self.path),
            ) from exc

    def save(self, store: PreviewStore) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=".previews-", suffix=".json", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(store.to_dict(), handle, indent=2, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self.path)
        except Exception:
            Path(temp_name).unlink(missing_ok=True)
            raise
        log_event("store.saved", path=str(self.path), previews=len(store.previews))

    def append(self, preview: PreviewSet) -> int:
        store = self.load()
        store.previews.append(preview)
        self.save(store)
        return len(store.previews)

    def create(
        self,
        *,
        screenshot_path: str,
        title: str,
        subtitle: str,
        device_id: str | None = None,
        palette_id: str | None = None,
    ) -> tuple[PreviewSet, int]:
        """Create a preview for an existing screenshot, filling omitted ids from settings."""

        screenshot_path = _require_file(screenshot_path)
        store = self.load()
        preview = PreviewSet.create(
            screenshot_path=screenshot_path,
            title=title,
            subtitle=subtitle,
            device_id=device_id or store.settings.default_device_id,
            palette_id=palette_id or store.settings.default_palette_id,
        )
        store.previews.append(preview)
        self.save(store)
        return preview, len(store.previews)

    def remove(self, preview_id: str) -> tuple[PreviewSet, int]:
        store = self.load()
        preview = store.find(preview_id)
        if preview is None:
            raise NotFound(f"Preview not found: {preview_id}", id=preview_id)
        store.previews.remove(preview)
        self.save(store)
        return preview, len(store.previews)

    def update(self, preview_id: str, **changes: str | None) -> PreviewSet:
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise TypeError(f"Unsupported preview fields: {', '.join(sorted(unknown))}")

        supplied = {name: value for name, value in changes.items() if value}
        if "screenshot_path" in supplied:
            supplied["screenshot_path"] = _require_file(supplied["screenshot_path"])

        store = self.load()
        preview = store.find(preview_id)
        if preview is None:
            raise NotFound(f"Preview not found: {preview_id}", id=preview_id)
        for name, value in supplied.items():
            setattr(preview, name, value)
        self.save(store)
        return preview

    def clear(self) -> int:
        store = self.load()
        count = len(store.previews)
        store.previews = []
        self.save(store)
        return count

    def update_settings(self, **changes: str | None) -> PreviewSettings:
        unknown = set(changes) - set(_SETTINGS_FIELDS)
        if unknown:
            raise TypeError(f"Unsupported settings fields: {', '.join(sorted(unknown))}")

        store = self.load()
        supplied = {name: value for name, value in changes.items() if value}
        store.settings = replace(store.settings, **supplied)
        self.save(store)
        return store.settings


def _require_file(path: str) -> str:
    """Return the absolute form of an existing screenshot path."""

    resolved = Path(path).expanduser().resolve()
    if not resolved.is_file():
        raise NotFound(f"Screenshot not found: {path}", path=path)
    return str(resolved)
