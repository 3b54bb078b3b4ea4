"""Command handlers returning ``success``/``error``/``hint`` results."""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

from .capabilities import Launcher
from .config import ServiceConfig
from .devices import DeviceManager, map_target_to_device_id, select_default_target
from .errors import ConfirmationRequired, NothingToGenerate, PreviewError
from .events import log_event, logger
from .handoff import Handoff, HandoffResult
from .host import MacHost
from .orchestrator import CaptureOrchestrator, ScreenRequest
from .platforms import Platform, detect_platform
from .results import failure, from_error, success
from .schemas import (
    AddPreviewRequest,
    CaptureAppScreensRequest,
    CaptureSimulatorRequest,
    ConfirmRequest,
    CreateAppPreviewsRequest,
    DetectPlatformRequest,
    GeneratePreviewsRequest,
    LaunchAndCaptureRequest,
    RemovePreviewRequest,
    ScreenSpec,
    UpdatePreviewRequest,
    UpdateSettingsRequest,
)
from .session import SessionState
from .state_machine import Sleep
from .store import PreviewRepository

LANGUAGE_NAMES = {"en": "English", "ja": "Japanese"}
RENDERER_HINT = "Make sure MUSE Preview Maker is installed"

Result = dict[str, Any]
Handler = TypeVar("Handler", bound=Callable[..., Awaitable[Result]])


def tool_boundary(func: Handler) -> Handler:
    """Convert every exception raised by a command into a failure result."""

    @functools.wraps(func)
    async def wrapper(self: PreviewTools, *args: Any, **kwargs: Any) -> Result:
        try:
            return await func(self, *args, **kwargs)
        except PreviewError as exc:
            log_event("tool.failed", tool=func.__name__, code=exc.code, reason=str(exc))
            result = from_error(exc)
            if exc.session is not None:
                self.session = exc.session
                result["session"] = exc.session.to_dict()
            return result
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure in %s", func.__name__)
            return failure(
                f"Unexpected error: {exc}",
                code="internal_error",
                hint="Check the service logs for details.",
            )

    return wrapper  # type: ignore[return-value]


class PreviewTools:
    """One coroutine per command. Holds the latest advisory session snapshot."""

    def __init__(
        self,
        *,
        repository: PreviewRepository,
        device_manager: DeviceManager,
        orchestrator: CaptureOrchestrator,
        handoff: Handoff,
        launcher: Launcher,
    ) -> None:
        self.repository = repository
        self.device_manager = device_manager
        self.orchestrator = orchestrator
        self.handoff = handoff
        self._launcher = launcher
        self.session = SessionState()

    @classmethod
    def build(
        cls,
        config: ServiceConfig,
        host: Any | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> PreviewTools:
        host = host or MacHost(command_timeout=config.command_timeout)
        repository = PreviewRepository(config.store_path, defaults=config.defaults)
        device_manager = DeviceManager(host)
        handoff = Handoff(
            launcher=host,
            bundle_id=config.renderer_bundle_id,
            pending_path=config.pending_path,
            data_directory=config.data_directory,
        )
        orchestrator = CaptureOrchestrator(
            device_manager=device_manager,
            capturer=host,
            launcher=host,
            repository=repository,
            handoff=handoff,
            screenshots_directory=config.screenshots_directory,
            delays=config.delays,
            sleep=sleep,
        )
        return cls(
            repository=repository,
            device_manager=device_manager,
            orchestrator=orchestrator,
            handoff=handoff,
            launcher=host,
        )

    # Preview sets

    @tool_boundary
    async def add_preview(self, request: AddPreviewRequest) -> Result:
        preview, total = self.repository.create(
            screenshot_path=request.screenshot_path,
            title=request.title,
            subtitle=request.subtitle,
            device_id=request.device_id,
            palette_id=request.palette_id,
        )
        return success(
            message="Preview added successfully",
            preview=preview.to_dict(),
            totalPreviews=total,
        )

    @tool_boundary
    async def list_previews(self) -> Result:
        store = self.repository.load()
        return success(
            count=len(store.previews),
            previews=[
                {"index": index, **preview.to_dict()}
                for index, preview in enumerate(store.previews, start=1)
            ],
        )

    @tool_boundary
    async def remove_preview(self, request: RemovePreviewRequest) -> Result:
        removed, remaining = self.repository.remove(request.id)
        return success(
            message="Preview removed",
            removed=removed.to_dict(),
            remainingPreviews=remaining,
        )

    @tool_boundary
    async def update_preview(self, request: UpdatePreviewRequest) -> Result:
        preview = self.repository.update(
            request.id,
            title=request.title,
            subtitle=request.subtitle,
            screenshot_path=request.screenshot_path,
            device_id=request.device_id,
            palette_id=request.palette_id,
        )
        return success(message="Preview updated", preview=preview.to_dict())

    @tool_boundary
    async def clear_all(self, request: ConfirmRequest) -> Result:
        if not request.confirm:
            raise ConfirmationRequired("Please set confirm: true to clear all previews")
        count = self.repository.clear()
        return success(message=f"Cleared {count} preview(s)", cleared=count)

    @tool_boundary
    async def reset_previews(self, request: ConfirmRequest) -> Result:
        if not request.confirm:
            raise ConfirmationRequired("Please set confirm: true to reset previews and screenshots")
        cleared, deleted = self.orchestrator.reset()
        return success(
            message=f"Cleared {cleared} preview(s) and deleted {deleted} screenshot(s)",
            clearedPreviews=cleared,
            deletedScreenshots=deleted,
        )

    # Settings

    @tool_boundary
    async def get_settings(self) -> Result:
        return success(settings=self.repository.load().settings.to_dict())

    @tool_boundary
    async def update_settings(self, request: UpdateSettingsRequest) -> Result:
        settings = self.repository.update_settings(
            default_device_id=request.default_device_id,
            default_palette_id=request.default_palette_id,
            output_directory=_expand(request.output_directory),
            language=request.language,
        )
        return success(message="Settings updated", settings=settings.to_dict())

    # Discovery

    @tool_boundary
    async def list_simulators(self) -> Result:
        targets = await self.device_manager.discover()
        default = select_default_target(targets)
        result = success(
            count=len(targets),
            defaultHandle=default.handle if default else None,
            simulators=[
                {
                    "name": target.name,
                    "handle": target.handle,
                    "osVersion": target.os_version,
                    "priority": target.priority,
                    "deviceId": map_target_to_device_id(target.name),
                }
                for target in targets
            ],
        )
        if not targets:
            result["hint"] = "No simulator is booted. Open Simulator.app and boot an iPhone."
        return result

    @tool_boundary
    async def detect_platform(self, request: DetectPlatformRequest) -> Result:
        platform = await detect_platform(
            request.app_id,
            launcher=self._launcher,
            device_manager=self.device_manager,
        )
        result = success(appId=request.app_id, platform=platform.value)
        if platform is Platform.UNKNOWN:
            result["hint"] = "Install the app on this Mac or a booted simulator."
        return result

    # Capture

    @tool_boundary
    async def capture_simulator(self, request: CaptureSimulatorRequest) -> Result:
        report = await self.orchestrator.capture_once(
            title=request.title,
            subtitle=request.subtitle,
            target_handle=request.target_handle,
            device_id=request.device_id,
            palette_id=request.palette_id,
            session=self.session,
        )
        return success(message=f"Captured {report.target_name}", **report.to_dict())

    @tool_boundary
    async def launch_and_capture(self, request: LaunchAndCaptureRequest) -> Result:
        report = await self.orchestrator.launch_and_capture(
            app_id=request.app_id,
            title=request.title,
            subtitle=request.subtitle,
            platform=request.platform,
            target_handle=request.target_handle,
            device_id=request.device_id,
            palette_id=request.palette_id,
            delay=request.delay,
            session=self.session,
        )
        self.session = report.session
        return success(
            message=f"Launched {request.app_id} and captured {report.target_name}",
            **report.to_dict(),
        )

    @tool_boundary
    async def capture_app_screens(self, request: CaptureAppScreensRequest) -> Result:
        report = await self.orchestrator.capture_app_screens(
            app_id=request.app_id,
            screens=_screens(request.screens),
            platform=request.platform,
            target_handle=request.target_handle,
            device_id=request.device_id,
            launch_delay=request.launch_delay,
            session=self.session,
        )
        self.session = report.session
        return success(
            message=f"Captured {len(report.previews)} of {len(request.screens)} screen(s)",
            requested=len(request.screens),
            **report.to_dict(),
        )

    @tool_boundary
    async def create_app_previews(self, request: CreateAppPreviewsRequest) -> Result:
        report = await self.orchestrator.create_app_previews(
            app_id=request.app_id,
            screens=_screens(request.screens or []),
            platform=request.platform,
            target_handle=request.target_handle,
            device_id=request.device_id,
            launch_delay=request.launch_delay,
            export_all_sizes=request.export_all_sizes,
            session=self.session,
        )
        self.session = report.session
        common = {
            "platform": report.platform.value,
            "deviceId": report.device_id,
            "target": report.target_name,
            "clearedPreviews": report.cleared_previews,
            "deletedScreenshots": report.deleted_screenshots,
        }

        if report.capture is None or report.handoff is None:
            language = self.repository.load().settings.language
            return success(
                needsCopy=True,
                message="Marketing copy required",
                language=language,
                hint=(
                    "Call create_app_previews again with screens: "
                    "[{title, subtitle}, ...], one entry per screen, written in "
                    f"{LANGUAGE_NAMES.get(language, language)}."
                ),
                **common,
            )

        result = success(
            needsCopy=False,
            message=f"Created {len(report.capture.previews)} preview set(s)",
            handoff=report.handoff.to_dict(),
            **{**report.capture.to_dict(), **common},
        )
        if not report.handoff.opened:
            result["hint"] = f"{RENDERER_HINT}; the preview data folder was opened instead."
        return result

    # Handoff

    @tool_boundary
    async def open_app(self) -> Result:
        store = self.repository.load()
        outcome = await self.handoff.deliver(store, auto_generate=False)
        if not outcome.opened:
            return _handoff_failure("Failed to open app", outcome)
        return success(message="MUSE Preview Maker opened", previewsLoaded=len(store.previews))

    @tool_boundary
    async def generate_previews(self, request: GeneratePreviewsRequest) -> Result:
        store = self.repository.load()
        if not store.previews:
            raise NothingToGenerate("No previews to generate. Add some previews first.")

        output_directory = _expand(request.output_directory) or store.settings.output_directory
        outcome = await self.handoff.deliver(
            store,
            output_directory=output_directory,
            export_all_sizes=request.export_all_sizes,
            auto_generate=True,
        )
        if not outcome.opened:
            return _handoff_failure("Failed to start generation", outcome)
        return success(
            message=f"Generation started for {len(store.previews)} preview(s)",
            outputDirectory=output_directory,
            previews=[
                {"title": preview.title, "subtitle": preview.subtitle}
                for preview in store.previews
            ],
        )


def _screens(specs: list[ScreenSpec]) -> list[ScreenRequest]:
    return [
        ScreenRequest(
            title=spec.title,
            subtitle=spec.subtitle,
            delay=spec.delay,
            palette_id=spec.palette_id,
        )
        for spec in specs
    ]


def _expand(path: str | None) -> str | None:
    return str(Path(path).expanduser()) if path else path


def _handoff_failure(prefix: str, outcome: HandoffResult) -> Result:
    return failure(
        f"{prefix}: {outcome.error}",
        hint=RENDERER_HINT,
        code="handoff_failed",
        revealed=outcome.revealed,
    )
