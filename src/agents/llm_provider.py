"""LLM provider abstraction using LiteLLM.

Supports OpenAI, Anthropic, Google Gemini, Azure AI Foundry, and Ollama (local).
Provider and model are configured in config.yaml under the ``agents:`` section.
API keys come from environment variables following LiteLLM conventions.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("smartplan.agents.llm")

_PROVIDER_MODEL_DEFAULTS: dict[str, str] = {
    "openai": "gpt-5.2",
    "anthropic": "claude-sonnet-4-20250514",
    "google": "gemini/gemini-2.5-flash",
    "azure": "azure/gpt-5.2",
    "ollama": "ollama/llama4",
}


def _load_agents_config() -> dict[str, Any]:
    """Load agent config from config.yaml, falling back to defaults."""
    from src.common.config import DEFAULTS, load_config

    cfg: dict[str, Any] = dict(DEFAULTS["agents"])
    try:
        agents = load_config().get("agents", {}) or {}
        for key in ("provider", "model", "api_base", "temperature"):
            if key in agents and agents[key] is not None:
                cfg[key] = agents[key]
    except (FileNotFoundError, ValueError) as exc:
        logger.warning("Failed to load config.yaml: %s", exc)
    return cfg


def _resolve_model(cfg: dict[str, Any]) -> str:
    """Build the LiteLLM model string from provider + model config."""
    provider = cfg.get("provider", "openai")
    model = cfg.get("model", "")

    if not model:
        model = _PROVIDER_MODEL_DEFAULTS.get(provider, "gpt-5.2")

    if provider == "ollama" and not model.startswith("ollama/"):
        model = f"ollama/{model}"
    elif provider == "azure" and not model.startswith("azure/"):
        model = f"azure/{model}"
    elif provider == "google" and not model.startswith("gemini/"):
        model = f"gemini/{model}"

    return model


def complete(messages: list[dict[str, str]]) -> str:
    """Send messages to the configured LLM provider. Returns response text."""
    import litellm

    cfg = _load_agents_config()
    model = _resolve_model(cfg)

    kwargs: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": cfg.get("temperature", 0.3),
    }
    if cfg.get("api_base"):
        kwargs["api_base"] = cfg["api_base"]

    logger.info("LLM call: model=%s, msgs=%d", model, len(messages))

    litellm.drop_params = True
    response = litellm.completion(**kwargs)
    content = response.choices[0].message.content or ""

    logger.info("LLM response: %d chars", len(content))
    return content


def grounded_completion(prompt: str, query: str, max_results: int = 5) -> str:
    """Answer ``prompt`` with web search results for ``query`` as context."""
    from src.agents.web_search import format_results, search_web

    results = search_web(query, max_results=max_results)
    messages: list[dict[str, str]] = [
        {
            "role": "system",
            "content": (
                "You answer using the web search results provided. "
                "Prefer facts from the results over prior knowledge."
            ),
        },
    ]
    if results:
        messages.append({"role": "system", "content": f"Search results:\n{format_results(results)}"})
    messages.append({"role": "user", "content": prompt})
    return complete(messages)
