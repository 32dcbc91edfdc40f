"""Web search used to ground the shorts discovery prompt.

Primary: Brave Search API (web endpoint, includes video results).
Fallback: DuckDuckGo (free, no API key).
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

logger = logging.getLogger("smartplan.agents.search")

_BRAVE_WEB_URL = "https://api.search.brave.com/res/v1/web/search"


def _brave_api_key() -> str | None:
    return os.environ.get("BRAVE_SEARCH_API_KEY") or os.environ.get("BRAVE_API_KEY")


# ---------------------------------------------------------------------------
# Brave Search
# ---------------------------------------------------------------------------

def _search_brave_web(query: str, max_results: int = 5) -> list[dict[str, Any]]:
    """Search Brave web API. Returns normalized result dicts."""
    api_key = _brave_api_key()
    if not api_key:
        return []

    params: dict[str, Any] = {"q": query, "count": min(max_results, 20)}
    headers = {
        "X-Subscription-Token": api_key,
        "Accept": "application/json",
    }

    try:
        resp = requests.get(_BRAVE_WEB_URL, params=params, headers=headers, timeout=15)
        resp.raise_for_status()
        data = resp.json()
    except Exception as exc:
        logger.warning("Brave web search failed for '%s': %s", query, exc)
        return []

    results: list[dict[str, Any]] = []
    for section in ("videos", "web"):
        for item in data.get(section, {}).get("results", []):
            meta = item.get("meta_url", {})
            results.append({
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "snippet": item.get("description", ""),
                "source": meta.get("hostname", "") if isinstance(meta, dict) else "",
            })

    logger.info("Brave web '%s': %d results", query, len(results))
    return results[:max_results]


# ---------------------------------------------------------------------------
# DuckDuckGo fallback
# ---------------------------------------------------------------------------

def _search_ddg(query: str, max_results: int = 5) -> list[dict[str, Any]]:
    """DuckDuckGo fallback when Brave is unavailable."""
    try:
        from duckduckgo_search import DDGS
    except ImportError:
        logger.error("duckduckgo-search not installed: pip install duckduckgo-search")
        return []

    results: list[dict[str, Any]] = []
    try:
        with DDGS() as ddgs:
            for item in ddgs.videos(query, max_results=max_results):
                results.append({
                    "title": item.get("title", ""),
                    "url": item.get("content", ""),
                    "snippet": item.get("description", ""),
                    "source": item.get("publisher", ""),
                })
    except Exception as exc:
        logger.warning("DuckDuckGo video search failed for '%s': %s", query, exc)
        try:
            with DDGS() as ddgs:
                for item in ddgs.text(query, max_results=max_results):
                    results.append({
                        "title": item.get("title", ""),
                        "url": item.get("href", ""),
                        "snippet": item.get("body", ""),
                        "source": "",
                    })
        except Exception as exc2:
            logger.error("DuckDuckGo text search also failed for '%s': %s", query, exc2)

    logger.info("DDG search '%s': %d results", query, len(results))
    return results


# ---------------------------------------------------------------------------
# Unified public API
# ---------------------------------------------------------------------------

def search_web(query: str, max_results: int = 5) -> list[dict[str, Any]]:
    """Search the web for ``query``.

    Tries Brave Search API first, falls back to DuckDuckGo if the Brave key
    is missing or the API fails.

    Returns list of dicts with keys: title, url, snippet, source
    """
    results = _search_brave_web(query, max_results)
    if not results:
        results = _search_ddg(query, max_results)
    return results


def format_results(results: list[dict[str, Any]]) -> str:
    """Render search results as a numbered plain-text list for a prompt."""
    lines: list[str] = []
    for i, r in enumerate(results, 1):
        lines.append(f"{i}. {r.get('title', '')} ({r.get('url', '')})")
        if r.get("snippet"):
            lines.append(f"   {r['snippet']}")
    return "\n".join(lines)
