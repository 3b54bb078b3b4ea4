"""Configuration loading helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from .store import LANGUAGES, PreviewSettings

CONFIG_ENV_VAR = "MUSE_PREVIEW_CONFIG_PATH"
CONFIG_SEARCH_PATHS_ENV_VAR = "MUSE_PREVIEW_CONFIG_SEARCH_PATHS"
DEFAULT_CONFIG_FILENAME = "musepreview.yaml"
DEFAULT_CONFIG_SEARCH_PATHS: tuple[Path, ...] = (
    Path(DEFAULT_CONFIG_FILENAME),
    Path("config") / DEFAULT_CONFIG_FILENAME,
)

DEFAULT_DATA_DIRECTORY = "~/.muse-app-preview"
DEFAULT_RENDERER_BUNDLE_ID = "musepreviewmaker.loro"
STORE_FILENAME = "previews.json"
PENDING_FILENAME = "pending-previews.json"
SCREENSHOTS_DIRNAME = "screenshots"


@dataclass(slots=True, frozen=True)
class DelaySettings:
    launch: float
    screen: float


@dataclass(slots=True, frozen=True)
class ServiceConfig:
    data_directory: Path
    renderer_bundle_id: str
    command_timeout: float
    delays: DelaySettings
    defaults: PreviewSettings

    @property
    def store_path(self) -> Path:
        return self.data_directory / STORE_FILENAME

    @property
    def pending_path(self) -> Path:
        return self.data_directory / PENDING_FILENAME

    @property
    def screenshots_directory(self) -> Path:
        return self.data_directory / SCREENSHOTS_DIRNAME


def load_config(path: Path | None = None) -> ServiceConfig:
    """Load configuration from a YAML document, or built-in defaults when ``path`` is None."""

    raw: dict[str, Any] = {}
    if path is not None:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return parse_config(raw)


def parse_config(raw: dict[str, Any]) -> ServiceConfig:
    settings_raw = raw.get("settings") or {}
    delays_raw = settings_raw.get("delays") or {}
    defaults_raw = settings_raw.get("defaults") or {}

    timeout = _optional_float(settings_raw, "command_timeout_seconds", 30.0)
    if timeout <= 0:
        raise ValueError("settings.command_timeout_seconds must be > 0")

    language = _optional_str(defaults_raw, "language", "en")
    if language not in LANGUAGES:
        raise ValueError(f"Field 'language' must be one of: {', '.join(LANGUAGES)}")

    defaults = PreviewSettings(
        default_device_id=_optional_str(defaults_raw, "device_id", "iphone_6_7"),
        default_palette_id=_optional_str(defaults_raw, "palette_id", "ocean"),
        output_directory=str(
            Path(_optional_str(defaults_raw, "output_directory", "~/Desktop/Previews")).expanduser()
        ),
        language=language,
    )

    return ServiceConfig(
        data_directory=Path(
            _optional_str(settings_raw, "data_directory", DEFAULT_DATA_DIRECTORY)
        ).expanduser(),
        renderer_bundle_id=_optional_str(
            settings_raw, "renderer_bundle_id", DEFAULT_RENDERER_BUNDLE_ID
        ),
        command_timeout=timeout,
        delays=DelaySettings(
            launch=_optional_delay(delays_raw, "launch", 3.0),
            screen=_optional_delay(delays_raw, "screen", 2.0),
        ),
        defaults=defaults,
    )


def resolve_config_path(
    override: str | os.PathLike[str] | None = None,
    extra_search_paths: Iterable[str | os.PathLike[str]] | None = None,
) -> Path | None:
    """Locate the configuration file; ``None`` means run on built-in defaults."""

    candidate = override or os.getenv(CONFIG_ENV_VAR)
    if candidate:
        path = _normalize_path(candidate)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found at {path}")
        return path

    search_candidates: list[Path] = []
    env_search = os.getenv(CONFIG_SEARCH_PATHS_ENV_VAR)
    if env_search:
        for raw in env_search.split(os.pathsep):
            cleaned = raw.strip()
            if cleaned:
                search_candidates.append(Path(cleaned))

    if extra_search_paths:
        for configured in extra_search_paths:
            search_candidates.append(Path(str(configured)))

    search_candidates.extend(DEFAULT_CONFIG_SEARCH_PATHS)

    for candidate_path in search_candidates:
        path = _normalize_path(candidate_path)
        if path.exists():
            return path
    return None


def _normalize_path(candidate: str | os.PathLike[str]) -> Path:
    path = Path(candidate).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def _optional_str(source: dict[str, Any], key: str, default: str) -> str:
    value = source.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Field '{key}' must be a non-empty string")
    return value.strip()


def _optional_float(source: dict[str, Any], key: str, default: float) -> float:
    value = source.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field '{key}' must be numeric") from exc


def _optional_delay(source: dict[str, Any], key: str, default: float) -> float:
    value = _optional_float(source, key, default)
    if value < 0:
        raise ValueError(f"Field '{key}' must be >= 0")
    return value
