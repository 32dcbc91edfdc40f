"""Shorts feed with a simulated, search-grounded discovery step.

Discovery asks the LLM (with web search results as context) for popular
shorts on a topic, then prepends a new entry built from the query with
placeholder media and engagement numbers.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable
from urllib.parse import quote

from src.common.state import SHORTS_FEED_KEY, LocalStore

logger = logging.getLogger("smartplan.shorts")

PLACEHOLDER_VIDEO_ID = "M7lc1UVf-VE"
CLIP_TYPES = ("video", "youtube")


class DiscoveryError(Exception):
    """The discovery search call failed."""


@dataclass
class ClipData:
    id: str | int
    type: str
    src: str
    avatar: str
    user: str
    description: str
    likes: int
    shares: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClipData:
        clip_type = data.get("type", "video")
        if clip_type not in CLIP_TYPES:
            raise ValueError(f"Unknown clip type: {clip_type}")
        return cls(
            id=data["id"],
            type=clip_type,
            src=data["src"],
            avatar=data.get("avatar", ""),
            user=data.get("user", ""),
            description=data.get("description", ""),
            likes=int(data.get("likes", 0)),
            shares=int(data.get("shares", 0)),
        )


DEFAULT_CLIPS: tuple[ClipData, ...] = (
    ClipData(
        id="yt1",
        type="youtube",
        src="M7lc1UVf-VE",
        avatar="https://i.pravatar.cc/150?img=12",
        user="@google",
        description="Welcome to the future of AI. #AI #Shorts",
        likes=85000,
        shares=12000,
    ),
    ClipData(
        id=1,
        type="video",
        src="https://videos.pexels.com/video-files/4434246/4434246-hd_960_1920_25fps.mp4",
        avatar="https://i.pravatar.cc/150?img=1",
        user="@naturelover",
        description="Beautiful waterfall in the middle of the forest. #nature #waterfall #travel",
        likes=12345,
        shares=678,
    ),
    ClipData(
        id="yt2",
        type="youtube",
        src="dQw4w9WgXcQ",
        avatar="https://i.pravatar.cc/150?img=8",
        user="@retro_vibes",
        description="Never gonna give you up! Classical hits. #music #legends",
        likes=1000000,
        shares=500000,
    ),
    ClipData(
        id=2,
        type="video",
        src="https://videos.pexels.com/video-files/8310332/8310332-hd_960_1920_25fps.mp4",
        avatar="https://i.pravatar.cc/150?img=2",
        user="@cityscapes",
        description="Night time in the city that never sleeps. #city #nightlife #vibes",
        likes=23456,
        shares=1234,
    ),
)


def _discovery_prompt(query: str) -> str:
    return (
        f"Find me 3 popular YouTube Shorts or viral videos about: {query}. "
        "Return a list of details including video title, a hypothetical username, "
        "and a likely YouTube Video ID if you can find one, otherwise suggest a placeholder."
    )


def _default_search(prompt: str, query: str) -> str:
    from src.agents.llm_provider import grounded_completion
    return grounded_completion(prompt, query)


def build_discovered_clip(
    query: str,
    placeholder_video_id: str = PLACEHOLDER_VIDEO_ID,
    rng: random.Random | None = None,
) -> ClipData:
    rng = rng or random.Random()
    return ClipData(
        id=f"yt-discover-{int(time.time() * 1000)}",
        type="youtube",
        src=placeholder_video_id,
        avatar=f"https://i.pravatar.cc/150?u={quote(query)}",
        user=f"@{''.join(query.split()).lower()}_creator",
        description=(
            f"Discovery: {query}. Retrieved via Intelligent Search. "
            "#Viral #NewDiscovery"
        ),
        likes=rng.randrange(95000),
        shares=rng.randrange(15000),
    )


class ShortsFeed:
    """The persisted shorts feed."""

    def __init__(
        self,
        store: LocalStore,
        placeholder_video_id: str = PLACEHOLDER_VIDEO_ID,
        search: Callable[[str, str], str] | None = None,
    ) -> None:
        self.store = store
        self.placeholder_video_id = placeholder_video_id
        self._search = search or _default_search

    def entries(self) -> list[ClipData]:
        saved = self.store.get_json(SHORTS_FEED_KEY)
        if saved is None:
            return list(DEFAULT_CLIPS)
        clips: list[ClipData] = []
        for entry in saved:
            try:
                clips.append(ClipData.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed feed entry %r: %s", entry, exc)
        return clips

    def _save(self, clips: list[ClipData]) -> None:
        self.store.set_json(SHORTS_FEED_KEY, [c.to_dict() for c in clips])

    def discover(self, query: str) -> ClipData:
        """Run the discovery search and prepend a new entry for ``query``."""
        query = self.search(query)
        return self.add_discovery(query)

    def search(self, query: str) -> str:
        """Blocking search step of :meth:`discover`. Returns the stripped query."""
        query = (query or "").strip()
        if not query:
            raise ValueError("query is required")

        try:
            answer = self._search(_discovery_prompt(query), query)
        except Exception as exc:
            logger.error("Discovery search failed for '%s': %s", query, exc)
            raise DiscoveryError(str(exc) or "Discovery search failed") from exc
        logger.info("Discovery search '%s': %d chars", query, len(answer or ""))
        return query

    def add_discovery(self, query: str) -> ClipData:
        clip = build_discovered_clip(query, self.placeholder_video_id)
        self._save([clip, *self.entries()])
        return clip

    def reset(self) -> list[ClipData]:
        clips = list(DEFAULT_CLIPS)
        self._save(clips)
        logger.info("Shorts feed reset to defaults")
        return clips
