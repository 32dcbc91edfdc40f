"""FastAPI router for the agenda panel."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from src.common.workspace import Workspace
from src.dashboard.deps import json_body, json_flag, require_login

logger = logging.getLogger("smartplan.agenda.routes")

router = APIRouter(prefix="/api/agenda", tags=["agenda"])


@router.get("")
async def list_agenda(ws: Workspace = Depends(require_login)) -> JSONResponse:
    return JSONResponse({
        "items": [i.to_dict() for i in ws.list_items()],
        "pending": ws.pending_count(),
    })


@router.post("")
async def add_agenda_item(request: Request, ws: Workspace = Depends(require_login)) -> JSONResponse:
    body = await json_body(request)
    try:
        item = ws.add_item(
            title=body.get("title", ""),
            time=body.get("time", ""),
            description=body.get("description", ""),
            category=body.get("category", "work"),
            alarm_enabled=json_flag(body, "alarmEnabled"),
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return JSONResponse(item.to_dict(), status_code=201)


@router.post("/{item_id}/complete")
async def toggle_complete(item_id: str, ws: Workspace = Depends(require_login)) -> JSONResponse:
    try:
        item = ws.toggle_complete(item_id)
    except KeyError:
        raise HTTPException(404, "Agenda item not found")
    return JSONResponse(item.to_dict())


@router.post("/{item_id}/alarm")
async def toggle_alarm(item_id: str, ws: Workspace = Depends(require_login)) -> JSONResponse:
    try:
        item = ws.toggle_alarm(item_id)
    except KeyError:
        raise HTTPException(404, "Agenda item not found")
    return JSONResponse(item.to_dict())


@router.delete("/{item_id}")
async def remove_agenda_item(item_id: str, ws: Workspace = Depends(require_login)) -> JSONResponse:
    try:
        ws.remove_item(item_id)
    except KeyError:
        raise HTTPException(404, "Agenda item not found")
    return JSONResponse({"ok": True})
