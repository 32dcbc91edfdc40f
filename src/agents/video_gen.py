"""Video lab: long-running text-to-video generation via the OpenAI Videos API.

A generation run is two asyncio tasks:

  - the job, which submits the prompt, polls the operation every
    ``video.poll_interval_seconds`` until it is done, then downloads the file
  - the progress rotation, which cycles the loading message every
    ``video.progress_interval_seconds`` while the job runs

Both are cancelled by :meth:`VideoStudio.reset` and :meth:`VideoStudio.shutdown`.
A not-found response on download means the selected API key cannot see the
generated asset; the studio then drops its credential so the UI asks for a
new one.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger("smartplan.agents.videogen")

_MODEL = "sora-2"

LOADING_MESSAGES = [
    "Dreaming up your sequence...",
    "Painting motion into reality...",
    "Assembling the cinematic frames...",
    "Fine-tuning the animation path...",
    "Applying digital magic...",
    "Almost there! Just a few more seconds...",
    "Polishing the final output...",
]

NOT_FOUND_TEXT = "Requested entity was not found"
NOT_FOUND_MESSAGE = f"{NOT_FOUND_TEXT}. Please re-select your API key."

_SIZES: dict[tuple[str, str], str] = {
    ("720p", "16:9"): "1280x720",
    ("720p", "9:16"): "720x1280",
    ("1080p", "16:9"): "1792x1024",
    ("1080p", "9:16"): "1024x1792",
}
ASPECT_RATIOS = ("16:9", "9:16")
RESOLUTIONS = ("720p", "1080p")

_DONE_STATUSES = {"completed", "failed"}


class CredentialError(Exception):
    """No API key has been selected for paid video generation."""


class VideoGenerationError(Exception):
    """The video operation failed or produced nothing to download."""


def video_size(resolution: str, aspect_ratio: str) -> str:
    try:
        return _SIZES[(resolution, aspect_ratio)]
    except KeyError:
        raise ValueError(
            f"Unsupported resolution/aspect ratio: {resolution} {aspect_ratio}"
        ) from None


def _is_not_found(exc: BaseException) -> bool:
    return getattr(exc, "status_code", None) == 404 or NOT_FOUND_TEXT in str(exc)


def _default_client_factory(api_key: str | None) -> Any:
    from openai import OpenAI
    return OpenAI(api_key=api_key) if api_key else OpenAI()


class VideoStudio:
    """State and background tasks of the video lab panel."""

    def __init__(
        self,
        output_dir: Path | str,
        model: str = _MODEL,
        seconds: str = "8",
        poll_interval: float = 10.0,
        progress_interval: float = 8.0,
        client_factory: Callable[[str | None], Any] | None = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.model = model
        self.seconds = str(seconds)
        self.poll_interval = poll_interval
        self.progress_interval = progress_interval
        self._client_factory = client_factory or _default_client_factory

        self._api_key: str | None = None
        self.has_key = bool(os.environ.get("OPENAI_API_KEY"))

        self.video_url: str | None = None
        self.loading = False
        self.error: str | None = None
        self.progress_message = LOADING_MESSAGES[0]

        self._job: asyncio.Task | None = None
        self._progress: asyncio.Task | None = None

    def snapshot(self) -> dict[str, Any]:
        return {
            "video_url": self.video_url,
            "loading": self.loading,
            "error": self.error,
            "progress_message": self.progress_message,
            "has_key": self.has_key,
        }

    # ------------------------------------------------------------------
    # Credential selection
    # ------------------------------------------------------------------

    def select_key(self, api_key: str | None = None) -> None:
        """Choose the key for paid generation calls; None means the environment key."""
        if api_key is not None and not api_key.strip():
            raise ValueError("api_key must not be blank")
        self._api_key = api_key.strip() if api_key else None
        self.has_key = True
        logger.info("Video API key selected (%s)", "explicit" if self._api_key else "environment")

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._job is not None and not self._job.done()

    def start(self, prompt: str, aspect_ratio: str = "16:9", resolution: str = "720p") -> asyncio.Task:
        """Kick off a generation run. Must be called from the event loop."""
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"aspect_ratio must be one of {', '.join(ASPECT_RATIOS)}")
        if resolution not in RESOLUTIONS:
            raise ValueError(f"resolution must be one of {', '.join(RESOLUTIONS)}")
        if not self.has_key:
            raise CredentialError("Select an API key before generating video.")
        if self.running:
            raise RuntimeError("A video is already being generated.")

        size = video_size(resolution, aspect_ratio)
        self.loading = True
        self.error = None
        self.video_url = None
        self.progress_message = LOADING_MESSAGES[0]

        loop = asyncio.get_running_loop()
        self._progress = loop.create_task(self._rotate_progress(), name="video-progress")
        self._job = loop.create_task(self._run(prompt, size), name="video-job")
        logger.info("Video generation started: size=%s, prompt='%s'", size, prompt[:60])
        return self._job

    async def wait(self) -> dict[str, Any]:
        """Wait for the current run (if any) and return the final state."""
        if self._job is not None:
            try:
                await self._job
            except asyncio.CancelledError:
                pass
        return self.snapshot()

    async def reset(self) -> None:
        await self._cancel_tasks()
        self.video_url = None
        self.loading = False
        self.error = None
        self.progress_message = LOADING_MESSAGES[0]

    async def shutdown(self) -> None:
        await self._cancel_tasks()
        self.loading = False

    async def _cancel_tasks(self) -> None:
        for task in (self._job, self._progress):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._job = None
        self._progress = None

    async def _rotate_progress(self) -> None:
        index = 0
        while True:
            await asyncio.sleep(self.progress_interval)
            index = (index + 1) % len(LOADING_MESSAGES)
            self.progress_message = LOADING_MESSAGES[index]

    async def _run(self, prompt: str, size: str) -> None:
        try:
            client = self._client_factory(self._api_key)
            video = await asyncio.to_thread(
                client.videos.create,
                model=self.model,
                prompt=prompt,
                size=size,
                seconds=self.seconds,
            )
            while getattr(video, "status", None) not in _DONE_STATUSES:
                await asyncio.sleep(self.poll_interval)
                video = await asyncio.to_thread(client.videos.retrieve, video.id)

            if video.status == "failed":
                err = getattr(video, "error", None)
                detail = getattr(err, "message", None) or "Video generation failed to return a video."
                raise VideoGenerationError(detail)

            self.video_url = await self._download(client, video.id)
            logger.info("Video ready: %s", self.video_url)
        except Exception as exc:
            message = str(exc) or "An error occurred during generation."
            if NOT_FOUND_TEXT in message:
                self.has_key = False
            self.error = message
            logger.error("Video generation failed: %s", message)
        finally:
            self.loading = False
            if self._progress is not None:
                self._progress.cancel()

    async def _download(self, client: Any, video_id: str) -> str:
        try:
            content = await asyncio.to_thread(client.videos.download_content, video_id)
        except Exception as exc:
            if _is_not_found(exc):
                self.has_key = False
                raise VideoGenerationError(NOT_FOUND_MESSAGE) from exc
            raise VideoGenerationError("Failed to fetch the generated video file.") from exc

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{video_id}.mp4"
        await asyncio.to_thread(content.write_to_file, path)
        return f"/api/video/files/{path.name}"


# ------------------------------------------------------------------
# Process-wide instance
# ------------------------------------------------------------------

_studio: VideoStudio | None = None


def get_video_studio() -> VideoStudio:
    global _studio
    if _studio is None:
        from src.common.config import load_config, resolve_data_dir
        cfg = load_config()
        video = cfg["video"]
        _studio = VideoStudio(
            output_dir=resolve_data_dir(cfg, "videos"),
            model=video.get("model", _MODEL),
            seconds=video.get("seconds", "8"),
            poll_interval=video["poll_interval_seconds"],
            progress_interval=video["progress_interval_seconds"],
        )
    return _studio


def reset_video_studio() -> None:
    global _studio
    _studio = None
