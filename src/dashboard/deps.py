"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from src.common.workspace import Workspace, get_workspace


def require_login() -> Workspace:
    """Reject requests while the workspace is locked."""
    ws = get_workspace()
    ws.refresh()
    if not ws.authenticated:
        raise HTTPException(401, "Not logged in")
    return ws


async def json_body(request: Request) -> dict[str, Any]:
    """Request body as a dict; an empty or non-JSON body is ``{}``."""
    if not request.headers.get("content-type", "").startswith("application/json"):
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(400, "Invalid JSON body") from None
    if not isinstance(body, dict):
        raise HTTPException(400, "JSON body must be an object")
    return body


def json_flag(body: dict[str, Any], key: str, default: bool = True) -> bool:
    """Boolean field of a JSON body; anything but true/false is a 400."""
    value = body.get(key, default)
    if not isinstance(value, bool):
        raise HTTPException(400, f"{key} must be true or false")
    return value
