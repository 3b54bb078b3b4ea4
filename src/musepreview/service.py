"""FastAPI integration entrypoint."""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Any, Iterable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import load_config, resolve_config_path
from .errors import PreviewError
from .events import SERVICE_NAME, configure_logging, log_event
from .results import failure
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
    UpdatePreviewRequest,
    UpdateSettingsRequest,
    describe_tools,
)
from .state_machine import Sleep
from .tools import PreviewTools


def create_app(
    *,
    config_path: str | None = None,
    host: Any | None = None,
    config_search_paths: Iterable[str | os.PathLike[str]] | None = None,
    sleep: Sleep = asyncio.sleep,
) -> FastAPI:
    """Instantiate the FastAPI application."""

    configure_logging()

    state: dict[str, Any] = {
        "tools": None,
        "config": None,
        "config_path": config_path,
        "config_search_paths": tuple(config_search_paths or ()),
    }

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        try:
            resolved_path = resolve_config_path(state["config_path"], state["config_search_paths"])
            config = load_config(resolved_path)
        except Exception:
            log_event("config.load_failed", path=state["config_path"])
            raise

        state["config"] = config
        state["config_path"] = str(resolved_path) if resolved_path else None
        state["tools"] = PreviewTools.build(config, host, sleep=sleep)
        log_event("config.loaded", path=state["config_path"], data_directory=str(config.data_directory))
        try:
            yield
        finally:
            state["tools"] = None
            log_event("config.unloaded")

    app = FastAPI(
        title="MUSE App Preview",
        description="Capture app screenshots and marketing copy for MUSE Preview Maker.",
        version="1.0.0",
        lifespan=_lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(_describe_problem(error) for error in exc.errors())
        log_event("request.invalid", path=request.url.path, reason=problems)
        return JSONResponse(
            status_code=422,
            content=failure(
                f"Invalid request: {problems}",
                code="invalid_request",
                hint="Call GET /tools for the expected input of each command.",
            ),
        )

    # Commands run one at a time; the store relies on a single writer.
    command_lock = asyncio.Lock()

    def _tools() -> PreviewTools:
        tools = state.get("tools")
        if tools is None:
            raise HTTPException(status_code=503, detail={"message": "Service not initialized"})
        return tools

    async def _run(name: str, call) -> dict[str, Any]:
        async with command_lock:
            log_event("tool.start", tool=name)
            result = await call
        log_event("tool.finished", tool=name, success=result.get("success"))
        return result

    @app.get("/")
    async def root() -> dict[str, Any]:
        config = state.get("config")
        return {
            "service": SERVICE_NAME,
            "version": app.version,
            "config_path": state.get("config_path"),
            "data_directory": str(config.data_directory) if config else None,
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        tools = _tools()
        try:
            targets = await tools.device_manager.discover()
        except PreviewError as exc:
            log_event("health.reported", status="unavailable")
            return {"service": SERVICE_NAME, "status": "unavailable", "error": str(exc), "targets": []}

        status_text = "healthy" if targets else "no-targets"
        log_event("health.reported", status=status_text, targets=len(targets))
        return {
            "service": SERVICE_NAME,
            "status": status_text,
            "targets": [{"name": target.name, "handle": target.handle} for target in targets],
        }

    @app.get("/tools")
    async def list_tools() -> dict[str, Any]:
        return {"tools": describe_tools()}

    @app.post("/tools/add_preview")
    async def add_preview(request: AddPreviewRequest) -> dict[str, Any]:
        return await _run("add_preview", _tools().add_preview(request))

    @app.post("/tools/list_previews")
    async def list_previews() -> dict[str, Any]:
        return await _run("list_previews", _tools().list_previews())

    @app.post("/tools/remove_preview")
    async def remove_preview(request: RemovePreviewRequest) -> dict[str, Any]:
        return await _run("remove_preview", _tools().remove_preview(request))

    @app.post("/tools/update_preview")
    async def update_preview(request: UpdatePreviewRequest) -> dict[str, Any]:
        return await _run("update_preview", _tools().update_preview(request))

    @app.post("/tools/clear_all")
    async def clear_all(request: ConfirmRequest) -> dict[str, Any]:
        return await _run("clear_all", _tools().clear_all(request))

    @app.post("/tools/reset_previews")
    async def reset_previews(request: ConfirmRequest) -> dict[str, Any]:
        return await _run("reset_previews", _tools().reset_previews(request))

    @app.post("/tools/get_settings")
    async def get_settings() -> dict[str, Any]:
        return await _run("get_settings", _tools().get_settings())

    @app.post("/tools/update_settings")
    async def update_settings(request: UpdateSettingsRequest) -> dict[str, Any]:
        return await _run("update_settings", _tools().update_settings(request))

    @app.post("/tools/list_simulators")
    async def list_simulators() -> dict[str, Any]:
        return await _run("list_simulators", _tools().list_simulators())

    @app.post("/tools/detect_platform")
    async def detect_platform(request: DetectPlatformRequest) -> dict[str, Any]:
        return await _run("detect_platform", _tools().detect_platform(request))

    @app.post("/tools/capture_simulator")
    async def capture_simulator(request: CaptureSimulatorRequest) -> dict[str, Any]:
        return await _run("capture_simulator", _tools().capture_simulator(request))

    @app.post("/tools/launch_and_capture")
    async def launch_and_capture(request: LaunchAndCaptureRequest) -> dict[str, Any]:
        return await _run("launch_and_capture", _tools().launch_and_capture(request))

    @app.post("/tools/capture_app_screens")
    async def capture_app_screens(request: CaptureAppScreensRequest) -> dict[str, Any]:
        return await _run("capture_app_screens", _tools().capture_app_screens(request))

    @app.post("/tools/create_app_previews")
    async def create_app_previews(request: CreateAppPreviewsRequest) -> dict[str, Any]:
        return await _run("create_app_previews", _tools().create_app_previews(request))

    @app.post("/tools/open_app")
    async def open_app() -> dict[str, Any]:
        return await _run("open_app", _tools().open_app())

    @app.post("/tools/generate_previews")
    async def generate_previews(request: GeneratePreviewsRequest) -> dict[str, Any]:
        return await _run("generate_previews", _tools().generate_previews(request))

    return app


def _describe_problem(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message
