"""Builders for the ``success``/``error``/``hint`` response convention."""

from __future__ import annotations

from typing import Any

from .errors import PreviewError


def success(**fields: Any) -> dict[str, Any]:
    return {"success": True, **fields}


def failure(error: str, *, hint: str | None = None, **fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": False, "error": error}
    if hint:
        payload["hint"] = hint
    payload.update(fields)
    return payload


def from_error(exc: PreviewError) -> dict[str, Any]:
    return failure(str(exc), hint=exc.hint, code=exc.code, **exc.context)
