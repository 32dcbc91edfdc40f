"""FastAPI router for the shorts feed."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from src.common.config import load_config
from src.common.workspace import Workspace
from src.dashboard.deps import json_body, require_login
from src.shorts.feed import DiscoveryError, ShortsFeed

logger = logging.getLogger("smartplan.shorts.routes")

router = APIRouter(prefix="/api/shorts", tags=["shorts"])


def _get_feed(ws: Workspace) -> ShortsFeed:
    placeholder = load_config()["shorts"]["placeholder_video_id"]
    return ShortsFeed(ws.store, placeholder_video_id=placeholder)


@router.get("")
async def list_shorts(ws: Workspace = Depends(require_login)) -> JSONResponse:
    return JSONResponse([c.to_dict() for c in _get_feed(ws).entries()])


@router.post("/discover")
async def discover_short(request: Request, ws: Workspace = Depends(require_login)) -> JSONResponse:
    body = await json_body(request)
    feed = _get_feed(ws)
    try:
        query = await asyncio.to_thread(feed.search, body.get("query", ""))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    except DiscoveryError as exc:
        raise HTTPException(502, f"Discovery search failed: {exc}")
    clip = feed.add_discovery(query)
    return JSONResponse(clip.to_dict(), status_code=201)


@router.post("/reset")
async def reset_shorts(ws: Workspace = Depends(require_login)) -> JSONResponse:
    return JSONResponse([c.to_dict() for c in _get_feed(ws).reset()])
