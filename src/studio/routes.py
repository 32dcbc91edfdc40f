"""FastAPI router for the image and video labs."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from src.agents.image_gen import ImageStudio
from src.agents.video_gen import CredentialError, get_video_studio
from src.dashboard.deps import json_body, require_login

logger = logging.getLogger("smartplan.studio.routes")

router = APIRouter(prefix="/api", tags=["studio"], dependencies=[Depends(require_login)])

_image_studio = ImageStudio()


def get_image_studio() -> ImageStudio:
    return _image_studio


def _image_response(snapshot: dict) -> JSONResponse:
    return JSONResponse(snapshot, status_code=502 if snapshot.get("error") else 200)


# ------------------------------------------------------------------
# Image lab
# ------------------------------------------------------------------

@router.get("/image")
async def image_state() -> JSONResponse:
    return JSONResponse(_image_studio.snapshot())


@router.post("/image/mode")
async def image_mode(request: Request) -> JSONResponse:
    body = await json_body(request)
    try:
        _image_studio.switch_mode(body.get("mode", ""))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return JSONResponse(_image_studio.snapshot())


@router.post("/image/generate")
async def image_generate(request: Request) -> JSONResponse:
    body = await json_body(request)
    if _image_studio.mode != "generate":
        _image_studio.switch_mode("generate")
    try:
        snapshot = await asyncio.to_thread(_image_studio.run, body.get("prompt", ""))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return _image_response(snapshot)


@router.post("/image/edit")
async def image_edit(request: Request) -> JSONResponse:
    """Edit an uploaded image.

    Request body::

        {"prompt": "Add a red hat", "image": "data:image/png;base64,..."}

    ``image`` may be omitted to edit the previously uploaded source again.
    """
    body = await json_body(request)
    try:
        if _image_studio.mode != "edit":
            _image_studio.switch_mode("edit")
        if body.get("image"):
            _image_studio.set_original(body["image"])
        snapshot = await asyncio.to_thread(_image_studio.run, body.get("prompt", ""))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return _image_response(snapshot)


@router.post("/image/reset")
async def image_reset() -> JSONResponse:
    _image_studio.reset()
    return JSONResponse(_image_studio.snapshot())


# ------------------------------------------------------------------
# Video lab
# ------------------------------------------------------------------

@router.get("/video")
async def video_state() -> JSONResponse:
    return JSONResponse(get_video_studio().snapshot())


@router.post("/video/key")
async def video_select_key(request: Request) -> JSONResponse:
    body = await json_body(request)
    studio = get_video_studio()
    try:
        studio.select_key(body.get("api_key"))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return JSONResponse(studio.snapshot())


@router.post("/video/generate")
async def video_generate(request: Request) -> JSONResponse:
    body = await json_body(request)
    studio = get_video_studio()
    try:
        studio.start(
            body.get("prompt", ""),
            aspect_ratio=body.get("aspect_ratio", "16:9"),
            resolution=body.get("resolution", "720p"),
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    except CredentialError as exc:
        raise HTTPException(403, str(exc))
    except RuntimeError as exc:
        raise HTTPException(409, str(exc))
    return JSONResponse(studio.snapshot(), status_code=202)


@router.post("/video/reset")
async def video_reset() -> JSONResponse:
    studio = get_video_studio()
    await studio.reset()
    return JSONResponse(studio.snapshot())


@router.get("/video/files/{filename}")
async def video_file(filename: str) -> FileResponse:
    studio = get_video_studio()
    path = (studio.output_dir / filename).resolve()
    if path.parent != studio.output_dir.resolve() or not path.is_file():
        raise HTTPException(404, "File not found")
    return FileResponse(path=str(path), filename=filename, media_type="video/mp4")
