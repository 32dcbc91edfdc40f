"""Flat key-value persistence for the SmartPlan workspace.

Every value is a string, as in browser local storage. Structured values
(agenda, triggered alarms, shorts feed) are stored as JSON text under their
key. The whole map lives in a single JSON file that is rewritten atomically.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger("smartplan.state")

AUTH_KEY = "smart_plan_auth"
USER_EMAIL_KEY = "smart_plan_user_email"
ACTIVE_VIEW_KEY = "smart_plan_active_view"
AGENDA_KEY = "smart_plan_agenda_data"
TRIGGERED_ALARMS_KEY = "smart_plan_triggered_alarms"
SHORTS_FEED_KEY = "smart_plan_shorts_feed"
NOTIFICATION_PERMISSION_KEY = "smart_plan_notification_permission"


def load_state(state_path: Path | str) -> dict[str, str]:
    """Load the full key-value map. Returns empty dict if file missing."""
    path = Path(state_path)
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Corrupt store file %s, resetting: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Store file %s does not hold an object, resetting", path)
        return {}
    return {str(k): str(v) for k, v in data.items()}


def save_state(state_path: Path | str, state: dict[str, str]) -> None:
    """Atomically write the full key-value map."""
    path = Path(state_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as fh:
        json.dump(state, fh, indent=2, ensure_ascii=False)
    tmp.replace(path)


class LocalStore:
    """String-to-string store backed by one JSON file.

    Several processes (the server and CLI commands) may share the file, so
    :meth:`reload` picks up writes made elsewhere before a change is applied.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._data = load_state(self.path)
        self._stamp = self._file_stamp()

    def _file_stamp(self) -> tuple[int, int, int] | None:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return st.st_ino, st.st_mtime_ns, st.st_size

    def reload(self) -> bool:
        """Re-read the file if another writer changed it. Returns True on reload."""
        with self._lock:
            stamp = self._file_stamp()
            if stamp == self._stamp:
                return False
            self._data = load_state(self.path)
            self._stamp = stamp
            logger.debug("Reloaded store %s after external write", self.path)
            return True

    def get(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.update({key: value})

    def remove(self, key: str) -> None:
        with self._lock:
            self.reload()
            if self._data.pop(key, None) is not None:
                self.flush()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def get_json(self, key: str, default: Any = None) -> Any:
        """Decode a JSON value; a missing or unreadable value yields ``default``."""
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Unreadable JSON under %s, using default: %s", key, exc)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False))

    def update(self, values: dict[str, str]) -> None:
        """Set several keys with a single write. Keys not named are left as on disk."""
        for key, value in values.items():
            if not isinstance(value, str):
                raise TypeError(f"LocalStore values must be str, got {type(value).__name__} for {key}")
        with self._lock:
            self.reload()
            self._data.update(values)
            self.flush()

    def flush(self) -> None:
        with self._lock:
            save_state(self.path, self._data)
            self._stamp = self._file_stamp()
