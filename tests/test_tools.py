from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeHost
from musepreview.process import CommandError
from musepreview.schemas import (
    AddPreviewRequest,
    CaptureAppScreensRequest,
    ConfirmRequest,
    CreateAppPreviewsRequest,
    DetectPlatformRequest,
    GeneratePreviewsRequest,
    RemovePreviewRequest,
    UpdatePreviewRequest,
    UpdateSettingsRequest,
)
from musepreview.session import SessionState
from musepreview.tools import PreviewTools

GAME = "com.example.game"


async def _add(tools: PreviewTools, screenshot: Path, title: str = "Title") -> dict:
    return await tools.add_preview(
        AddPreviewRequest(screenshot_path=str(screenshot), title=title, subtitle="Subtitle")
    )


@pytest.mark.asyncio
async def test_add_preview_with_missing_file_leaves_store_unchanged(
    tools: PreviewTools, tmp_path: Path
) -> None:
    result = await tools.add_preview(
        AddPreviewRequest(screenshot_path=str(tmp_path / "missing.png"), title="T", subtitle="S")
    )

    assert result["success"] is False
    assert result["code"] == "not_found"
    assert "missing.png" in result["error"]
    assert (await tools.list_previews())["count"] == 0


@pytest.mark.asyncio
async def test_add_list_update_remove(tools: PreviewTools, screenshot: Path) -> None:
    added = await _add(tools, screenshot, "First")
    await _add(tools, screenshot, "Second")
    preview_id = added["preview"]["id"]

    assert added["success"] is True
    assert added["totalPreviews"] == 1
    assert added["preview"]["deviceId"] == "iphone_6_7"

    updated = await tools.update_preview(UpdatePreviewRequest(id=preview_id, title="Renamed"))
    assert updated["preview"]["title"] == "Renamed"
    assert updated["preview"]["subtitle"] == "Subtitle"

    listing = await tools.list_previews()
    assert [(item["index"], item["title"]) for item in listing["previews"]] == [
        (1, "Renamed"),
        (2, "Second"),
    ]

    removed = await tools.remove_preview(RemovePreviewRequest(id=preview_id))
    assert removed["removed"]["id"] == preview_id
    assert removed["remainingPreviews"] == 1

    missing = await tools.remove_preview(RemovePreviewRequest(id=preview_id))
    assert missing["success"] is False
    assert missing["code"] == "not_found"


@pytest.mark.asyncio
async def test_update_settings_changes_only_supplied_fields(tools: PreviewTools) -> None:
    before = (await tools.get_settings())["settings"]

    result = await tools.update_settings(UpdateSettingsRequest(output_directory="/tmp/x"))
    after = (await tools.get_settings())["settings"]

    assert result["success"] is True
    assert after["outputDirectory"] == "/tmp/x"
    assert {key: value for key, value in after.items() if key != "outputDirectory"} == {
        key: value for key, value in before.items() if key != "outputDirectory"
    }


@pytest.mark.asyncio
async def test_clear_all_requires_confirmation(tools: PreviewTools, screenshot: Path) -> None:
    await _add(tools, screenshot)

    refused = await tools.clear_all(ConfirmRequest(confirm=False))
    assert refused["success"] is False
    assert refused["code"] == "confirmation_required"
    assert refused["hint"]
    assert (await tools.list_previews())["count"] == 1

    first = await tools.clear_all(ConfirmRequest(confirm=True))
    second = await tools.clear_all(ConfirmRequest(confirm=True))
    assert (first["cleared"], second["cleared"]) == (1, 0)
    assert (await tools.list_previews())["count"] == 0


@pytest.mark.asyncio
async def test_generate_previews_with_empty_store(tools: PreviewTools, host: FakeHost) -> None:
    result = await tools.generate_previews(GeneratePreviewsRequest())

    assert result["success"] is False
    assert result["code"] == "nothing_to_generate"
    assert "open_application" not in host.names()


@pytest.mark.asyncio
async def test_generate_previews_starts_renderer(
    tools: PreviewTools, host: FakeHost, screenshot: Path, tmp_path: Path
) -> None:
    await _add(tools, screenshot, "Fast")
    output = tmp_path / "generated"

    result = await tools.generate_previews(
        GeneratePreviewsRequest(output_directory=str(output), export_all_sizes=True)
    )

    assert result["success"] is True
    assert result["outputDirectory"] == str(output)
    assert result["previews"] == [{"title": "Fast", "subtitle": "Subtitle"}]
    assert output.is_dir()
    assert host.calls[-1] == ("open_application", "musepreviewmaker.loro", "--generate")


@pytest.mark.asyncio
async def test_open_app_failure_carries_hint(tools: PreviewTools, host: FakeHost) -> None:
    host.open_error = CommandError("Unable to find application")

    result = await tools.open_app()

    assert result["success"] is False
    assert result["code"] == "handoff_failed"
    assert "MUSE Preview Maker" in result["hint"]
    assert result["revealed"] is not None


@pytest.mark.asyncio
async def test_list_simulators_reports_default(tools: PreviewTools, host: FakeHost) -> None:
    result = await tools.list_simulators()

    assert result["count"] == 3
    assert result["defaultHandle"] == "PROMAX-1"
    assert result["simulators"][0]["deviceId"] == "ipad_11"

    host.runtimes.clear()
    empty = await tools.list_simulators()
    assert empty["success"] is True
    assert empty["count"] == 0
    assert "hint" in empty


@pytest.mark.asyncio
async def test_detect_platform_unknown_has_hint(tools: PreviewTools) -> None:
    result = await tools.detect_platform(DetectPlatformRequest(app_id="com.example.ghost"))

    assert result["success"] is True
    assert result["platform"] == "unknown"
    assert "hint" in result


@pytest.mark.asyncio
async def test_capture_app_screens_reports_skips_and_session(
    tools: PreviewTools, host: FakeHost
) -> None:
    host.installed.add(("PROMAX-1", GAME))
    host.screenshot_failures.add(2)
    request = CaptureAppScreensRequest.model_validate(
        {
            "appId": GAME,
            "screens": [
                {"title": "One", "subtitle": "1"},
                {"title": "Two", "subtitle": "2"},
                {"title": "Three", "subtitle": "3"},
            ],
        }
    )

    result = await tools.capture_app_screens(request)

    assert result["success"] is True
    assert result["requested"] == 3
    assert result["captured"] == 2
    assert result["skipped"][0]["index"] == 2
    assert result["totalPreviews"] == 2
    assert result["session"] == {"targetHandle": "PROMAX-1", "appId": GAME}
    assert tools.session == SessionState(target_handle="PROMAX-1", app_id=GAME)


@pytest.mark.asyncio
async def test_failed_capture_after_launch_still_updates_session(
    tools: PreviewTools, host: FakeHost
) -> None:
    host.installed.add(("PHONE-1", GAME))
    host.screenshot_without_file.add(1)
    request = CaptureAppScreensRequest.model_validate(
        {"appId": GAME, "screens": [{"title": "One", "subtitle": "1"}]}
    )

    result = await tools.capture_app_screens(request)

    assert result["success"] is False
    assert result["code"] == "capture_failed"
    assert result["session"] == {"targetHandle": "PHONE-1", "appId": GAME}
    assert tools.session.target_handle == "PHONE-1"


@pytest.mark.asyncio
async def test_create_app_previews_asks_for_copy(tools: PreviewTools, host: FakeHost) -> None:
    host.installed.add(("PROMAX-1", GAME))
    await tools.update_settings(UpdateSettingsRequest(language="ja"))

    result = await tools.create_app_previews(CreateAppPreviewsRequest(app_id=GAME))

    assert result["success"] is True
    assert result["needsCopy"] is True
    assert result["language"] == "ja"
    assert "Japanese" in result["hint"]
    assert result["deviceId"] == "iphone_6_7"


@pytest.mark.asyncio
async def test_create_app_previews_without_renderer_hints(
    tools: PreviewTools, host: FakeHost
) -> None:
    host.installed.add(("PROMAX-1", GAME))
    host.open_error = CommandError("Unable to find application")
    request = CreateAppPreviewsRequest.model_validate(
        {"appId": GAME, "screens": [{"title": "One", "subtitle": "1"}]}
    )

    result = await tools.create_app_previews(request)

    assert result["success"] is True
    assert result["needsCopy"] is False
    assert result["captured"] == 1
    assert result["handoff"]["opened"] is False
    assert "MUSE Preview Maker" in result["hint"]


@pytest.mark.asyncio
async def test_unexpected_error_becomes_internal_error(tools: PreviewTools, host: FakeHost) -> None:
    host.list_error = RuntimeError("boom")  # type: ignore[assignment]

    result = await tools.list_simulators()

    assert result["success"] is False
    assert result["code"] == "internal_error"
    assert "boom" in result["error"]


@pytest.mark.asyncio
async def test_output_directories_expand_home(
    tools: PreviewTools, screenshot: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    await _add(tools, screenshot)

    settings = await tools.update_settings(UpdateSettingsRequest(output_directory="~/Previews"))
    generated = await tools.generate_previews(GeneratePreviewsRequest(output_directory="~/Generated"))

    assert settings["settings"]["outputDirectory"] == str(tmp_path / "home" / "Previews")
    assert generated["outputDirectory"] == str(tmp_path / "home" / "Generated")
    assert (tmp_path / "home" / "Generated").is_dir()
