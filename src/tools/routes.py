"""FastAPI router for the password generator."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from src.dashboard.deps import json_body, json_flag, require_login
from src.tools.password import (
    MAX_LENGTH,
    MIN_LENGTH,
    PasswordOptions,
    generate_password,
    password_strength,
)

router = APIRouter(prefix="/api", tags=["tools"], dependencies=[Depends(require_login)])


@router.post("/password")
async def api_password(request: Request) -> JSONResponse:
    body = await json_body(request)
    try:
        length = int(body.get("length", 16))
    except (TypeError, ValueError):
        raise HTTPException(400, "length must be an integer")
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        raise HTTPException(400, f"length must be between {MIN_LENGTH} and {MAX_LENGTH}")

    options = PasswordOptions(
        length=length,
        uppercase=json_flag(body, "uppercase"),
        lowercase=json_flag(body, "lowercase"),
        numbers=json_flag(body, "numbers"),
        symbols=json_flag(body, "symbols"),
    )
    return JSONResponse({
        "password": generate_password(options),
        "length": options.length,
        "strength": password_strength(options),
    })
