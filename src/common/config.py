"""Load and validate SmartPlan configuration from config.yaml."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("smartplan")

REPO_DIR = Path(__file__).resolve().parent.parent.parent
_DEFAULT_CONFIG_PATH = REPO_DIR / "config" / "config.yaml"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULTS: dict[str, Any] = {
    "data_dir": "~/.smartplan",
    "store_file": None,
    "log_dir": "~/.smartplan/logs",
    "log_level": "INFO",
    "auth": {"allowed_domain": "gmail.com"},
    "alarms": {"interval_seconds": 10, "catch_up": True},
    "notifications": {"icon": "https://picsum.photos/100/100"},
    "images": {"model": "gpt-image-1", "size": "1024x1024", "quality": "medium"},
    "video": {
        "model": "sora-2",
        "seconds": "8",
        "poll_interval_seconds": 10,
        "progress_interval_seconds": 8,
    },
    "agents": {
        "provider": "openai",
        "model": "gpt-5.2",
        "temperature": 0.3,
        "api_base": None,
    },
    "shorts": {"placeholder_video_id": "M7lc1UVf-VE"},
}


def load_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file, with env-var overrides.

    Environment variable overrides (if set):
        SMARTPLAN_DATA_DIR        -> data_dir
        SMARTPLAN_STORE_FILE      -> store_file
        SMARTPLAN_LOG_DIR         -> log_dir
        SMARTPLAN_LOG_LEVEL       -> log_level
        SMARTPLAN_ALARM_INTERVAL  -> alarms.interval_seconds
    """
    path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    cfg = _merge(copy.deepcopy(DEFAULTS), raw)

    # Apply env-var overrides
    _env_override(cfg, "SMARTPLAN_DATA_DIR", "data_dir")
    _env_override(cfg, "SMARTPLAN_STORE_FILE", "store_file")
    _env_override(cfg, "SMARTPLAN_LOG_DIR", "log_dir")
    _env_override(cfg, "SMARTPLAN_LOG_LEVEL", "log_level")
    _env_override(cfg, "SMARTPLAN_ALARM_INTERVAL", "alarms", "interval_seconds")

    _validate(cfg)
    return cfg


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base`` (in place)."""
    for key, val in override.items():
        if isinstance(val, dict) and isinstance(base.get(key), dict):
            _merge(base[key], val)
        else:
            base[key] = val
    return base


def _env_override(cfg: dict, env_key: str, *keys: str) -> None:
    """Override a nested config value from an environment variable."""
    val = os.environ.get(env_key)
    if val is None:
        return
    target = cfg
    for k in keys[:-1]:
        target = target.setdefault(k, {})
    target[keys[-1]] = val


def _validate(cfg: dict[str, Any]) -> None:
    """Coerce numeric settings and reject values the app cannot run with."""
    level = str(cfg.get("log_level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level: {cfg.get('log_level')}")
    cfg["log_level"] = level

    for section, key in (
        ("alarms", "interval_seconds"),
        ("video", "poll_interval_seconds"),
        ("video", "progress_interval_seconds"),
    ):
        try:
            value = float(cfg[section][key])
        except (TypeError, ValueError):
            raise ValueError(f"{section}.{key} must be a number") from None
        if value <= 0:
            raise ValueError(f"{section}.{key} must be positive, got {value}")
        cfg[section][key] = value

    if not str(cfg["auth"].get("allowed_domain") or "").strip():
        raise ValueError("auth.allowed_domain must not be empty")

    data_dir = Path(os.path.expanduser(str(cfg["data_dir"])))
    if data_dir.exists() and not data_dir.is_dir():
        raise ValueError(f"data_dir is not a directory: {data_dir}")


def resolve_data_dir(cfg: dict[str, Any], subdir: str | None = None) -> Path:
    """Return the absolute data directory (or a subdirectory), creating it if needed."""
    out = Path(os.path.expanduser(str(cfg["data_dir"])))
    if subdir:
        out = out / subdir
    out.mkdir(parents=True, exist_ok=True)
    return out


def store_path(cfg: dict[str, Any]) -> Path:
    """Path of the key-value store file."""
    if cfg.get("store_file"):
        return Path(os.path.expanduser(str(cfg["store_file"])))
    return resolve_data_dir(cfg) / "local_storage.json"


def load_env_local() -> None:
    """Load .env.local into os.environ so agent modules can find API keys."""
    env_file = REPO_DIR / ".env.local"
    if env_file.is_file():
        for line in env_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip())


def setup_logging(cfg: dict[str, Any]) -> None:
    """Configure root logging: stderr + rotating file."""
    log_dir = Path(os.path.expanduser(str(cfg["log_dir"])))
    log_dir.mkdir(parents=True, exist_ok=True)

    from logging.handlers import RotatingFileHandler

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    root = logging.getLogger("smartplan")
    root.setLevel(getattr(logging, cfg.get("log_level", "INFO")))
    if root.handlers:
        return

    # stderr
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    # rotating file
    fh = RotatingFileHandler(log_dir / "smartplan.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    root.addHandler(fh)
