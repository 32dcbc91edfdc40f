"""Image lab: text-to-image generation and prompt-driven image editing.

Uses the OpenAI Images API (gpt-image-1 by default). Both operations return
a ``data:image/png;base64,...`` URL that the UI can show or download as is.

gpt-image-1 features used:
  - Text-to-image via ``images.generate``
  - Image + instruction editing via ``images.edit``
  - Returns b64_json only -- passed through as a data URL
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Any

logger = logging.getLogger("smartplan.agents.imagegen")

_MODEL = "gpt-image-1"

MODES = ("generate", "edit")

_MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


class ImageGenerationError(Exception):
    """The image service failed or returned no image."""


def _get_client() -> Any:
    """Lazy-init OpenAI client."""
    from openai import OpenAI
    return OpenAI()


def _image_settings() -> dict[str, Any]:
    from src.common.config import DEFAULTS, load_config
    try:
        return {**DEFAULTS["images"], **(load_config().get("images") or {})}
    except (FileNotFoundError, ValueError):
        return dict(DEFAULTS["images"])


def _first_image(result: Any, empty_message: str) -> str:
    data = getattr(result, "data", None) or []
    for entry in data:
        b64 = getattr(entry, "b64_json", None)
        if b64:
            return f"data:image/png;base64,{b64}"
    raise ImageGenerationError(empty_message)


def split_data_url(data_url: str) -> tuple[str, str]:
    """Split ``data:<mime>;base64,<data>`` into (mime, base64 data)."""
    try:
        header, b64 = data_url.split(",", 1)
        mime = header.split(":", 1)[1].split(";", 1)[0]
    except (AttributeError, IndexError, ValueError):
        raise ValueError("Expected a base64 data URL") from None
    if not mime.startswith("image/") or not b64:
        raise ValueError("Expected a base64 image data URL")
    return mime, b64


def generate_image(prompt: str) -> str:
    """Generate a square image from ``prompt``. Returns a PNG data URL."""
    if not prompt or not prompt.strip():
        raise ValueError("prompt is required")
    if not os.environ.get("OPENAI_API_KEY"):
        raise ImageGenerationError("OPENAI_API_KEY not set")

    settings = _image_settings()
    try:
        client = _get_client()
        result = client.images.generate(
            model=settings.get("model", _MODEL),
            prompt=prompt,
            size=settings.get("size", "1024x1024"),
            quality=settings.get("quality", "medium"),
            output_format="png",
        )
    except Exception as exc:
        logger.error("Image generation failed for '%s': %s", prompt[:60], exc)
        raise ImageGenerationError(str(exc)) from exc

    url = _first_image(result, "AI did not generate an image for this prompt")
    logger.info("Generated image for '%s' (%d b64 chars)", prompt[:60], len(url))
    return url


def edit_image(base64_image: str, mime_type: str, prompt: str) -> str:
    """Apply ``prompt`` as an edit instruction to the given image."""
    if not prompt or not prompt.strip():
        raise ValueError("prompt is required")
    if not os.environ.get("OPENAI_API_KEY"):
        raise ImageGenerationError("OPENAI_API_KEY not set")
    try:
        image_bytes = base64.b64decode(base64_image, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("image is not valid base64") from None

    settings = _image_settings()
    ext = _MIME_EXTENSIONS.get(mime_type, "png")
    try:
        client = _get_client()
        result = client.images.edit(
            model=settings.get("model", _MODEL),
            image=(f"source.{ext}", image_bytes, mime_type),
            prompt=prompt,
        )
    except Exception as exc:
        logger.error("Image edit failed for '%s': %s", prompt[:60], exc)
        raise ImageGenerationError(str(exc)) from exc

    url = _first_image(result, "No image returned in response parts")
    logger.info("Edited image with '%s' (%d source bytes)", prompt[:60], len(image_bytes))
    return url


class ImageStudio:
    """State of the image lab panel."""

    def __init__(self) -> None:
        self.mode = "generate"
        self.original_url: str | None = None
        self.result_url: str | None = None
        self.loading = False
        self.error: str | None = None

    def snapshot(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "original_url": self.original_url,
            "result_url": self.result_url,
            "loading": self.loading,
            "error": self.error,
        }

    def switch_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode {mode!r}; expected generate or edit")
        self.mode = mode
        self.original_url = None
        self.result_url = None
        self.error = None

    def set_original(self, data_url: str) -> None:
        split_data_url(data_url)
        self.original_url = data_url
        self.result_url = None
        self.error = None

    def reset(self) -> None:
        self.original_url = None
        self.result_url = None
        self.loading = False
        self.error = None

    def run(self, prompt: str) -> dict[str, Any]:
        """Generate or edit according to the mode; failures land in ``error``."""
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")
        if self.mode == "edit" and not self.original_url:
            raise ValueError("upload an image to edit first")

        self.loading = True
        self.error = None
        try:
            if self.mode == "edit":
                mime, b64 = split_data_url(self.original_url)
                self.result_url = edit_image(b64, mime, prompt)
            else:
                self.result_url = generate_image(prompt)
        except ImageGenerationError as exc:
            self.error = str(exc) or "Failed to process request"
        finally:
            self.loading = False
        return self.snapshot()
