"""Tests for the shorts feed and its search-grounded discovery."""

from __future__ import annotations

import json
import random
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.agents import llm_provider, web_search
from src.common.state import SHORTS_FEED_KEY, LocalStore
from src.shorts.feed import (
    DEFAULT_CLIPS,
    DiscoveryError,
    ShortsFeed,
    build_discovered_clip,
)


@pytest.fixture()
def store(store_file: Path) -> LocalStore:
    return LocalStore(store_file)


class TestFeed:
    def test_defaults_when_nothing_saved(self, store: LocalStore) -> None:
        feed = ShortsFeed(store, search=lambda prompt, query: "")
        entries = feed.entries()
        assert [c.id for c in entries] == ["yt1", 1, "yt2", 2]
        assert {c.type for c in entries} == {"video", "youtube"}

    def test_discover_prepends_one_entry(self, store: LocalStore) -> None:
        calls = []
        feed = ShortsFeed(store, search=lambda prompt, query: calls.append((prompt, query)) or "answer")

        clip = feed.discover("  Cooking Hacks ")

        entries = feed.entries()
        assert len(entries) == len(DEFAULT_CLIPS) + 1
        assert entries[0].id == clip.id
        assert clip.type == "youtube"
        assert clip.src == "M7lc1UVf-VE"
        assert clip.user == "@cookinghacks_creator"
        assert clip.avatar == "https://i.pravatar.cc/150?u=Cooking%20Hacks"
        assert clip.description.startswith("Discovery: Cooking Hacks.")
        assert str(clip.id).startswith("yt-discover-")
        assert calls[0][1] == "Cooking Hacks"
        assert "Cooking Hacks" in calls[0][0]

    def test_feed_persisted(self, store: LocalStore, store_file: Path) -> None:
        feed = ShortsFeed(store, search=lambda prompt, query: "ok")
        clip = feed.discover("cats")

        reloaded = ShortsFeed(LocalStore(store_file), search=lambda prompt, query: "ok")
        assert reloaded.entries()[0].id == clip.id

        raw = json.loads(store_file.read_text(encoding="utf-8"))
        assert isinstance(raw[SHORTS_FEED_KEY], str)

    def test_failed_search_leaves_feed_unchanged(self, store: LocalStore) -> None:
        def failing(prompt: str, query: str) -> str:
            raise RuntimeError("quota exceeded")

        feed = ShortsFeed(store, search=failing)
        with pytest.raises(DiscoveryError, match="quota exceeded"):
            feed.discover("cats")
        assert len(feed.entries()) == len(DEFAULT_CLIPS)
        assert store.get(SHORTS_FEED_KEY) is None

    def test_blank_query_rejected(self, store: LocalStore) -> None:
        search = MagicMock(return_value="")
        feed = ShortsFeed(store, search=search)
        with pytest.raises(ValueError):
            feed.discover("   ")
        search.assert_not_called()

    def test_reset_restores_defaults(self, store: LocalStore) -> None:
        feed = ShortsFeed(store, search=lambda prompt, query: "ok")
        feed.discover("cats")
        feed.reset()
        assert [c.id for c in feed.entries()] == [c.id for c in DEFAULT_CLIPS]

    def test_malformed_entries_skipped(self, store: LocalStore) -> None:
        store.set_json(SHORTS_FEED_KEY, [
            {"id": "ok", "type": "youtube", "src": "abc"},
            {"id": "bad", "type": "gif", "src": "x"},
            {"type": "video"},
        ])
        assert [c.id for c in ShortsFeed(store).entries()] == ["ok"]

    def test_engagement_numbers_in_range(self) -> None:
        rng = random.Random(7)
        for _ in range(50):
            clip = build_discovered_clip("x", rng=rng)
            assert 0 <= clip.likes < 95000
            assert 0 <= clip.shares < 15000


class TestGrounding:
    def test_grounded_completion_includes_search_results(self, config_file) -> None:
        results = [{"title": "Top cat shorts", "url": "https://youtu.be/abc", "snippet": "Cats!", "source": ""}]
        response = MagicMock()
        response.choices[0].message.content = "Here are three shorts"

        with patch.object(web_search, "search_web", return_value=results), \
             patch("litellm.completion", return_value=response) as completion:
            answer = llm_provider.grounded_completion("Find cat shorts", "cats")

        assert answer == "Here are three shorts"
        kwargs = completion.call_args.kwargs
        assert kwargs["model"] == "gpt-5.2"
        contents = [m["content"] for m in kwargs["messages"]]
        assert any("Top cat shorts" in c for c in contents)
        assert kwargs["messages"][-1] == {"role": "user", "content": "Find cat shorts"}

    def test_search_falls_back_to_duckduckgo(self, monkeypatch) -> None:
        monkeypatch.delenv("BRAVE_SEARCH_API_KEY", raising=False)
        monkeypatch.delenv("BRAVE_API_KEY", raising=False)
        fallback = [{"title": "t", "url": "u", "snippet": "", "source": ""}]
        with patch.object(web_search, "_search_ddg", return_value=fallback) as ddg:
            assert web_search.search_web("cats", max_results=3) == fallback
        ddg.assert_called_once_with("cats", 3)

    def test_brave_results_normalized(self, monkeypatch) -> None:
        monkeypatch.setenv("BRAVE_SEARCH_API_KEY", "brave-key")
        resp = MagicMock()
        resp.json.return_value = {
            "videos": {"results": [{"title": "V", "url": "https://v", "description": "vid", "meta_url": {"hostname": "youtube.com"}}]},
            "web": {"results": [{"title": "W", "url": "https://w", "description": "web"}]},
        }
        with patch.object(web_search.requests, "get", return_value=resp) as get:
            results = web_search.search_web("cats", max_results=5)

        assert [r["title"] for r in results] == ["V", "W"]
        assert results[0]["source"] == "youtube.com"
        assert get.call_args.kwargs["headers"]["X-Subscription-Token"] == "brave-key"

    def test_format_results(self) -> None:
        text = web_search.format_results([
            {"title": "A", "url": "https://a", "snippet": "first"},
            {"title": "B", "url": "https://b"},
        ])
        assert text == "1. A (https://a)\n   first\n2. B (https://b)"
