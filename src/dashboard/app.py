#!/usr/bin/env python3
"""SmartPlan -- FastAPI service behind the personal productivity dashboard.

Run with:
    python3 -m uvicorn src.dashboard.app:app --host 127.0.0.1 --port 8765
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Allow running from repo root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from src.common.config import load_config, load_env_local, setup_logging
from src.common.workspace import VIEWS, AuthError, Workspace, get_workspace
from src.connect.socials import list_socials
from src.dashboard.deps import json_body, require_login
from src.monitor.alarm_monitor import get_alarm_monitor

logger = logging.getLogger("smartplan.dashboard")

app = FastAPI(title="SmartPlan", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from src.agenda.routes import router as agenda_router
from src.shorts.routes import router as shorts_router
from src.studio.routes import router as studio_router
from src.tools.routes import router as tools_router

app.include_router(agenda_router)
app.include_router(studio_router)
app.include_router(tools_router)
app.include_router(shorts_router)

VIEW_TITLES = {
    "agenda": "My Agenda",
    "studio": "Image Lab",
    "video": "Video Lab",
    "password": "Password Generator",
    "clips": "Shorts Lab",
    "connect": "Connect",
    "settings": "Settings",
}


# ══════════════════════════════════════════════════════════════════════════════
#  Lifecycle
# ══════════════════════════════════════════════════════════════════════════════

@app.on_event("startup")
async def _startup() -> None:
    load_env_local()
    cfg = load_config()
    setup_logging(cfg)
    get_alarm_monitor().start()
    logger.info("SmartPlan started (store=%s)", get_workspace().store.path)


@app.on_event("shutdown")
async def _shutdown() -> None:
    from src.agents.video_gen import get_video_studio

    await get_alarm_monitor().stop()
    await get_video_studio().shutdown()
    get_workspace().flush()


# ══════════════════════════════════════════════════════════════════════════════
#  Session
# ══════════════════════════════════════════════════════════════════════════════

@app.get("/api/health")
async def api_health() -> JSONResponse:
    return JSONResponse({"ok": True, "monitor_running": get_alarm_monitor().running})


@app.get("/api/session")
async def api_session() -> JSONResponse:
    return JSONResponse(get_workspace().session_info())


@app.post("/api/login")
async def api_login(request: Request) -> JSONResponse:
    body = await json_body(request)
    ws = get_workspace()
    try:
        ws.login(body.get("email", ""))
    except AuthError as exc:
        raise HTTPException(400, str(exc))
    return JSONResponse(ws.session_info())


@app.post("/api/logout")
async def api_logout(ws: Workspace = Depends(require_login)) -> JSONResponse:
    ws.logout()
    return JSONResponse(ws.session_info())


# ══════════════════════════════════════════════════════════════════════════════
#  View routing
# ══════════════════════════════════════════════════════════════════════════════

@app.get("/api/views")
async def api_views(ws: Workspace = Depends(require_login)) -> JSONResponse:
    return JSONResponse({
        "active": ws.active_view,
        "views": [{"id": v, "title": VIEW_TITLES[v]} for v in VIEWS],
    })


@app.put("/api/view")
async def api_set_view(request: Request, ws: Workspace = Depends(require_login)) -> JSONResponse:
    body = await json_body(request)
    try:
        ws.set_view(body.get("view", ""))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return JSONResponse({"active": ws.active_view})


# ══════════════════════════════════════════════════════════════════════════════
#  Alarms & notifications
# ══════════════════════════════════════════════════════════════════════════════

@app.get("/api/alerts")
async def api_alerts(ws: Workspace = Depends(require_login)) -> JSONResponse:
    """Dialog alerts waiting to be shown. Each alert is returned once."""
    return JSONResponse(get_alarm_monitor().notifier.drain_dialogs())


@app.post("/api/alarms/check")
async def api_alarms_check(ws: Workspace = Depends(require_login)) -> JSONResponse:
    fired = await asyncio.to_thread(get_alarm_monitor().check)
    return JSONResponse({"fired": [i.to_dict() for i in fired]})


@app.get("/api/settings/notifications")
async def api_notifications_get(ws: Workspace = Depends(require_login)) -> JSONResponse:
    return JSONResponse({"permission": ws.notification_permission})


@app.post("/api/settings/notifications")
async def api_notifications_request(ws: Workspace = Depends(require_login)) -> JSONResponse:
    permission = get_alarm_monitor().notifier.request_permission()
    return JSONResponse({"permission": permission})


# ══════════════════════════════════════════════════════════════════════════════
#  Connect
# ══════════════════════════════════════════════════════════════════════════════

@app.get("/api/socials")
async def api_socials(ws: Workspace = Depends(require_login)) -> JSONResponse:
    return JSONResponse(list_socials())


@app.get("/")
async def index() -> JSONResponse:
    ws = get_workspace()
    payload: dict[str, Any] = {
        "app": "SmartPlan",
        "authenticated": ws.authenticated,
        "views": list(VIEWS),
    }
    return JSONResponse(payload)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.dashboard.app:app",
        host="127.0.0.1",
        port=8765,
        reload=False,
        log_level="info",
    )
