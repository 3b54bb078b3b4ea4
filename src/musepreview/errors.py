"""Failure taxonomy surfaced to callers as structured results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .session import SessionState


class PreviewError(Exception):
    """Base class for expected failures; converted to failure payloads at the tool boundary."""

    code = "error"
    default_hint: str | None = None

    def __init__(self, message: str, *, hint: str | None = None, **context: Any) -> None:
        super().__init__(message)
        self.hint = hint if hint is not None else self.default_hint
        self.context = context
        # Set when the failure happened after an app was already launched.
        self.session: SessionState | None = None


class NotFound(PreviewError):
    code = "not_found"


class TargetNotFound(NotFound):
    code = "target_not_found"
    default_hint = "Call list_simulators to see the booted simulators and their handles."


class NoTargetAvailable(PreviewError):
    code = "no_target_available"
    default_hint = "Boot an iOS simulator (open Simulator.app) and try again."


class DiscoveryUnavailable(PreviewError):
    code = "discovery_unavailable"
    default_hint = "Make sure Xcode command line tools are installed and `xcrun simctl` works."


class CaptureFailed(PreviewError):
    code = "capture_failed"


class CaptureProducedNoFile(CaptureFailed):
    code = "capture_produced_no_file"
    default_hint = "Check Screen Recording permission for the terminal running this service."


class LaunchFailed(PreviewError):
    code = "launch_failed"


class AppNotFound(PreviewError):
    code = "app_not_found"
    default_hint = (
        "Install the app on a booted simulator or on this Mac, "
        "or pass platform explicitly."
    )


class ConfirmationRequired(PreviewError):
    code = "confirmation_required"
    default_hint = "Set confirm: true to proceed."


class StoreCorrupted(PreviewError):
    code = "store_corrupted"
    default_hint = "Fix or move the store file aside; a fresh store is created on the next write."


class NothingToGenerate(PreviewError):
    code = "nothing_to_generate"
    default_hint = "Add previews with add_preview or capture them first."
