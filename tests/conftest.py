"""Shared fixtures: temp config, fresh workspace singletons, ASGI client."""

from __future__ import annotations

import base64
import os
import struct
import zlib
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
import pytest_asyncio

os.environ.setdefault("OPENAI_API_KEY", "sk-test-fake-key")

REPO_DIR = Path(__file__).resolve().parent.parent


def _reset_singletons() -> None:
    from src.agents.video_gen import reset_video_studio
    from src.common.workspace import reset_workspace
    from src.monitor.alarm_monitor import reset_alarm_monitor
    from src.studio import routes as studio_routes

    reset_workspace()
    reset_alarm_monitor()
    reset_video_studio()
    studio_routes.get_image_studio().switch_mode("generate")


@pytest.fixture()
def config_file(tmp_path: Path):
    """Write a config.yaml pointing every path into tmp_path and make it the default."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_content = f"""
data_dir: {tmp_path}/data
log_dir: {tmp_path}/logs
log_level: INFO
auth:
  allowed_domain: gmail.com
alarms:
  interval_seconds: 10
  catch_up: true
video:
  model: sora-2
  poll_interval_seconds: 0.01
  progress_interval_seconds: 0.01
agents:
  provider: openai
  model: gpt-5.2
"""
    config = config_dir / "config.yaml"
    config.write_text(config_content)

    with patch("src.common.config._DEFAULT_CONFIG_PATH", config):
        _reset_singletons()
        yield config
        _reset_singletons()


@pytest.fixture()
def store_file(tmp_path: Path) -> Path:
    return tmp_path / "store" / "local_storage.json"


@pytest.fixture()
def workspace(store_file: Path):
    from src.common.state import LocalStore
    from src.common.workspace import Workspace

    ws = Workspace(LocalStore(store_file))
    ws.login("planner@gmail.com")
    return ws


@pytest.fixture()
def no_desktop_notifications():
    """Pretend no notification backend exists on this machine."""
    with patch("src.monitor.notifier._backend", return_value=None) as m:
        yield m


@pytest_asyncio.fixture()
async def client(config_file, no_desktop_notifications):
    """Async httpx client bound to the FastAPI app with a temp store."""
    from src.dashboard.app import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture()
async def auth_client(client: httpx.AsyncClient):
    r = await client.post("/api/login", json={"email": "planner@gmail.com"})
    assert r.status_code == 200
    yield client


def make_image_result(b64: str = "aGVsbG8=") -> MagicMock:
    """Build a mock OpenAI images response holding one b64 image."""
    entry = MagicMock()
    entry.b64_json = b64
    result = MagicMock()
    result.data = [entry]
    return result


def make_tiny_png() -> bytes:
    """Create a minimal valid 1x1 red PNG."""
    def _chunk(chunk_type: bytes, data: bytes) -> bytes:
        c = chunk_type + data
        return struct.pack(">I", len(data)) + c + struct.pack(">I", zlib.crc32(c) & 0xFFFFFFFF)

    sig = b"\x89PNG\r\n\x1a\n"
    ihdr = _chunk(b"IHDR", struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0))
    raw = zlib.compress(b"\x00\xff\x00\x00")
    idat = _chunk(b"IDAT", raw)
    iend = _chunk(b"IEND", b"")
    return sig + ihdr + idat + iend


def make_png_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(make_tiny_png()).decode()
