from __future__ import annotations

import json
from pathlib import Path

import pytest

from musepreview.errors import NotFound, StoreCorrupted
from musepreview.store import PreviewRepository, PreviewSettings, PreviewStore


@pytest.fixture
def defaults(tmp_path: Path) -> PreviewSettings:
    return PreviewSettings(output_directory=str(tmp_path / "out"))


@pytest.fixture
def repository(tmp_path: Path, defaults: PreviewSettings) -> PreviewRepository:
    return PreviewRepository(tmp_path / "data" / "previews.json", defaults=defaults)


def _shot(tmp_path: Path, name: str) -> str:
    path = tmp_path / name
    path.write_bytes(b"\x89PNG")
    return str(path)


def test_load_without_file_returns_default_store(
    repository: PreviewRepository, defaults: PreviewSettings
) -> None:
    store = repository.load()

    assert store.previews == []
    assert store.settings == defaults
    assert not repository.path.exists()


def test_create_fills_ids_from_settings(repository: PreviewRepository, tmp_path: Path) -> None:
    preview, total = repository.create(
        screenshot_path=_shot(tmp_path, "a.png"), title="A", subtitle="B"
    )

    assert total == 1
    assert preview.id.startswith("preview_")
    assert preview.device_id == "iphone_6_7"
    assert preview.palette_id == "ocean"
    assert repository.load().previews == [preview]


def test_create_rejects_missing_screenshot(repository: PreviewRepository, tmp_path: Path) -> None:
    with pytest.raises(NotFound, match="Screenshot not found"):
        repository.create(screenshot_path=str(tmp_path / "nope.png"), title="A", subtitle="B")

    assert not repository.path.exists()


def test_screenshot_paths_are_stored_absolute(
    repository: PreviewRepository, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _shot(tmp_path, "rel.png")
    _shot(tmp_path, "other.png")
    monkeypatch.chdir(tmp_path)

    preview, _ = repository.create(screenshot_path="rel.png", title="A", subtitle="B")
    updated = repository.update(preview.id, screenshot_path="./other.png")

    assert preview.screenshot_path == str(tmp_path / "rel.png")
    assert updated.screenshot_path == str(tmp_path / "other.png")
    stored = json.loads(repository.path.read_text(encoding="utf-8"))
    assert Path(stored["previews"][0]["screenshotPath"]).is_absolute()


def test_order_survives_append_remove_update(repository: PreviewRepository, tmp_path: Path) -> None:
    ids = [
        repository.create(screenshot_path=_shot(tmp_path, f"{n}.png"), title=n, subtitle=n)[0].id
        for n in ("one", "two", "three", "four")
    ]

    repository.remove(ids[1])
    repository.update(ids[2], title="THREE")
    repository.update(ids[0], subtitle="first", palette_id="forest")

    previews = repository.load().previews
    assert [preview.id for preview in previews] == [ids[0], ids[2], ids[3]]
    assert previews[0].subtitle == "first"
    assert previews[0].palette_id == "forest"
    assert previews[0].title == "one"
    assert previews[1].title == "THREE"


def test_remove_and_update_unknown_id_raise_not_found(repository: PreviewRepository) -> None:
    with pytest.raises(NotFound):
        repository.remove("preview_missing")
    with pytest.raises(NotFound):
        repository.update("preview_missing", title="x")


def test_update_with_missing_screenshot_changes_nothing(
    repository: PreviewRepository, tmp_path: Path
) -> None:
    preview, _ = repository.create(screenshot_path=_shot(tmp_path, "a.png"), title="A", subtitle="B")

    with pytest.raises(NotFound):
        repository.update(preview.id, title="changed", screenshot_path=str(tmp_path / "gone.png"))

    assert repository.load().previews[0].title == "A"


def test_round_trip_reproduces_store(repository: PreviewRepository, tmp_path: Path) -> None:
    repository.create(screenshot_path=_shot(tmp_path, "a.png"), title="A", subtitle="B")
    repository.update_settings(language="ja")
    original = repository.load()

    repository.save(original)

    assert repository.load() == original
    assert list(repository.path.parent.glob(".previews-*")) == []


def test_clear_twice_is_empty_both_times(repository: PreviewRepository, tmp_path: Path) -> None:
    repository.create(screenshot_path=_shot(tmp_path, "a.png"), title="A", subtitle="B")

    assert repository.clear() == 1
    assert repository.load().previews == []
    assert repository.clear() == 0
    assert repository.load().previews == []


def test_update_settings_is_partial(repository: PreviewRepository, defaults: PreviewSettings) -> None:
    settings = repository.update_settings(output_directory="/tmp/x", default_palette_id=None)

    assert settings.output_directory == "/tmp/x"
    assert settings.default_device_id == defaults.default_device_id
    assert settings.default_palette_id == defaults.default_palette_id
    assert settings.language == defaults.language


def test_load_applies_defaults_and_legacy_names(
    repository: PreviewRepository, defaults: PreviewSettings
) -> None:
    repository.path.parent.mkdir(parents=True)
    repository.path.write_text(
        json.dumps(
            {
                "previews": [
                    {
                        "id": "preview_1_abc",
                        "screenshotPath": "/tmp/a.png",
                        "title": "A",
                        "subtitle": "B",
                        "deviceType": "ipad_12_9",
                        "paletteId": "ocean",
                        "createdAt": "2024-01-01T00:00:00+00:00",
                    }
                ],
                "settings": {"defaultDeviceType": "iphone_6_5", "defaultPaletteId": "sunset"},
            }
        ),
        encoding="utf-8",
    )

    store = repository.load()

    assert store.previews[0].device_id == "ipad_12_9"
    assert store.settings.default_device_id == "iphone_6_5"
    assert store.settings.default_palette_id == "sunset"
    assert store.settings.output_directory == defaults.output_directory
    assert store.settings.language == "en"


def test_corrupted_store_fails_without_overwriting(repository: PreviewRepository) -> None:
    repository.path.parent.mkdir(parents=True)
    repository.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreCorrupted) as excinfo:
        repository.clear()

    assert excinfo.value.context["path"] == str(repository.path)
    assert repository.path.read_text(encoding="utf-8") == "{not json"


def test_store_to_dict_uses_wire_names() -> None:
    data = PreviewStore().to_dict()

    assert data["previews"] == []
    assert set(data["settings"]) == {
        "defaultDeviceId",
        "defaultPaletteId",
        "outputDirectory",
        "language",
    }
