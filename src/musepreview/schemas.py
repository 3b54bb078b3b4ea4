"""Request schemas for every command exposed by the service."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

APP_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"

PlatformChoice = Literal["auto", "ios", "macos"]
LanguageChoice = Literal["en", "ja"]


class ToolRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EmptyRequest(ToolRequest):
    pass


class AddPreviewRequest(ToolRequest):
    screenshot_path: str = Field(description="Absolute path to the screenshot image file")
    title: str = Field(description="Main title text for the preview (e.g. 'Amazing Feature')")
    subtitle: str = Field(description="Subtitle text for the preview")
    device_id: str | None = Field(default=None, description="Device size (iphone_6_7, ipad_12_9, ...)")
    palette_id: str | None = Field(default=None, description="Color palette (ocean, sunset, ...)")


class RemovePreviewRequest(ToolRequest):
    id: str = Field(description="The ID of the preview to remove")


class UpdatePreviewRequest(ToolRequest):
    id: str = Field(description="The ID of the preview to update")
    title: str | None = None
    subtitle: str | None = None
    screenshot_path: str | None = None
    device_id: str | None = None
    palette_id: str | None = None


class ConfirmRequest(ToolRequest):
    confirm: bool = Field(default=False, description="Must be true to confirm the destructive operation")


class UpdateSettingsRequest(ToolRequest):
    default_device_id: str | None = None
    default_palette_id: str | None = None
    output_directory: str | None = None
    language: LanguageChoice | None = None


class GeneratePreviewsRequest(ToolRequest):
    output_directory: str | None = Field(default=None, description="Directory for generated images")
    export_all_sizes: bool = Field(default=False, description="Export every device size per preview")


class DetectPlatformRequest(ToolRequest):
    app_id: str = Field(pattern=APP_ID_PATTERN, description="Bundle identifier of the app")


class CaptureSimulatorRequest(ToolRequest):
    title: str
    subtitle: str
    target_handle: str | None = Field(default=None, description="Simulator UDID; defaults to the largest booted iPhone")
    device_id: str | None = None
    palette_id: str | None = None


class LaunchAndCaptureRequest(ToolRequest):
    app_id: str = Field(pattern=APP_ID_PATTERN, description="Bundle identifier of the app")
    title: str
    subtitle: str
    platform: PlatformChoice = "auto"
    target_handle: str | None = None
    device_id: str | None = None
    palette_id: str | None = None
    delay: float | None = Field(default=None, ge=0, description="Seconds to wait after launch")


class ScreenSpec(ToolRequest):
    title: str
    subtitle: str
    delay: float | None = Field(default=None, ge=0, description="Seconds to wait before this screen")
    palette_id: str | None = None


class CaptureAppScreensRequest(ToolRequest):
    app_id: str = Field(pattern=APP_ID_PATTERN)
    screens: list[ScreenSpec] = Field(min_length=1)
    platform: PlatformChoice = "auto"
    target_handle: str | None = None
    device_id: str | None = None
    launch_delay: float | None = Field(default=None, ge=0)


class CreateAppPreviewsRequest(ToolRequest):
    app_id: str = Field(pattern=APP_ID_PATTERN)
    screens: list[ScreenSpec] | None = Field(
        default=None,
        description="Marketing copy per screen; omit to receive a request for copy",
    )
    platform: PlatformChoice = "auto"
    target_handle: str | None = None
    device_id: str | None = None
    launch_delay: float | None = Field(default=None, ge=0)
    export_all_sizes: bool = False


TOOL_DEFINITIONS: tuple[tuple[str, str, type[ToolRequest]], ...] = (
    ("add_preview", "Add a preview set from an existing screenshot, title and subtitle.", AddPreviewRequest),
    ("list_previews", "List all saved preview sets.", EmptyRequest),
    ("remove_preview", "Remove a preview set by its ID.", RemovePreviewRequest),
    ("update_preview", "Update fields of an existing preview set.", UpdatePreviewRequest),
    ("clear_all", "Clear all saved preview sets.", ConfirmRequest),
    ("reset_previews", "Clear all preview sets and delete captured screenshots.", ConfirmRequest),
    ("get_settings", "Get the default device, palette, output directory and language.", EmptyRequest),
    ("update_settings", "Update default settings; omitted fields are unchanged.", UpdateSettingsRequest),
    ("list_simulators", "List booted iOS simulators that can be captured.", EmptyRequest),
    ("detect_platform", "Detect whether an app runs on this Mac or a booted simulator.", DetectPlatformRequest),
    ("capture_simulator", "Screenshot a booted simulator and save it as a preview set.", CaptureSimulatorRequest),
    ("launch_and_capture", "Launch an app, wait, capture it and save a preview set.", LaunchAndCaptureRequest),
    ("capture_app_screens", "Launch an app once and capture several screens in sequence.", CaptureAppScreensRequest),
    ("create_app_previews", "Reset, capture every screen of an app and hand off to MUSE Preview Maker.", CreateAppPreviewsRequest),
    ("open_app", "Open MUSE Preview Maker with the saved preview sets.", EmptyRequest),
    ("generate_previews", "Generate all preview images with MUSE Preview Maker.", GeneratePreviewsRequest),
)


def describe_tools() -> list[dict[str, Any]]:
    return [
        {
            "name": name,
            "description": description,
            "inputSchema": model.model_json_schema(by_alias=True),
        }
        for name, description, model in TOOL_DEFINITIONS
    ]
