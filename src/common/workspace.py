"""The single-user workspace: session, active view, agenda and alarm state.

All state is mirrored into the :class:`~src.common.state.LocalStore` after
every change, so a restart picks up exactly where the user left off.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from datetime import datetime
from typing import Any

from src.agenda.models import AgendaItem, normalize_time, validate_category
from src.common.config import load_config, store_path
from src.common.state import (
    ACTIVE_VIEW_KEY,
    AGENDA_KEY,
    AUTH_KEY,
    NOTIFICATION_PERMISSION_KEY,
    TRIGGERED_ALARMS_KEY,
    USER_EMAIL_KEY,
    LocalStore,
)

logger = logging.getLogger("smartplan.workspace")

VIEWS = ("agenda", "studio", "video", "password", "clips", "connect", "settings")
DEFAULT_VIEW = "agenda"
PERMISSIONS = ("default", "granted", "denied")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    """Login rejected by the email-format check."""


class Workspace:
    """In-memory workspace state, synced to the local store on every change."""

    def __init__(self, store: LocalStore, allowed_domain: str = "gmail.com") -> None:
        self.store = store
        self.allowed_domain = allowed_domain.lower().lstrip("@")
        self.lock = threading.RLock()
        self._load()
        self.last_saved = datetime.now()

    def _load(self) -> None:
        store = self.store
        self.authenticated = store.get(AUTH_KEY) == "true"
        self.user_email = store.get(USER_EMAIL_KEY) or ""
        view = store.get(ACTIVE_VIEW_KEY) or DEFAULT_VIEW
        self.active_view = view if view in VIEWS else DEFAULT_VIEW
        self.items: list[AgendaItem] = [
            AgendaItem.from_dict(d) for d in store.get_json(AGENDA_KEY, []) or []
        ]
        self.triggered: set[str] = set(store.get_json(TRIGGERED_ALARMS_KEY, []) or [])
        permission = store.get(NOTIFICATION_PERMISSION_KEY) or "default"
        self.notification_permission = permission if permission in PERMISSIONS else "default"

    def refresh(self) -> bool:
        """Pick up changes another process wrote to the store since our last read."""
        with self.lock:
            if not self.store.reload():
                return False
            self._load()
            logger.info("Workspace reloaded from %s", self.store.path)
            return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def sync(self) -> None:
        """Write every workspace key to the store."""
        with self.lock:
            values = {
                AGENDA_KEY: _dumps([item.to_dict() for item in self.items]),
                AUTH_KEY: "true" if self.authenticated else "false",
                USER_EMAIL_KEY: self.user_email,
                ACTIVE_VIEW_KEY: self.active_view,
                TRIGGERED_ALARMS_KEY: _dumps(sorted(self.triggered)),
                NOTIFICATION_PERMISSION_KEY: self.notification_permission,
            }
            self.store.update(values)
            self.last_saved = datetime.now()

    def flush(self) -> None:
        """Final write on shutdown: agenda and triggered alarms."""
        with self.lock:
            self.refresh()
            self.store.update({
                AGENDA_KEY: _dumps([item.to_dict() for item in self.items]),
                TRIGGERED_ALARMS_KEY: _dumps(sorted(self.triggered)),
            })
        logger.info("Workspace flushed to %s", self.store.path)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, email: str) -> None:
        email = (email or "").strip()
        if not _EMAIL_RE.match(email) or not email.lower().endswith(f"@{self.allowed_domain}"):
            raise AuthError("Please enter a valid Gmail address to access your agenda.")
        with self.lock:
            self.refresh()
            self.user_email = email
            self.authenticated = True
            self.sync()
        logger.info("Logged in as %s", email)

    def logout(self) -> None:
        """Lock the workspace. Agenda data stays on disk."""
        with self.lock:
            self.refresh()
            self.authenticated = False
            self.user_email = ""
            self.sync()
        logger.info("Logged out")

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view {view!r}; expected one of {', '.join(VIEWS)}")
        with self.lock:
            self.refresh()
            self.active_view = view
            self.sync()

    def set_notification_permission(self, permission: str) -> None:
        if permission not in PERMISSIONS:
            raise ValueError(f"Unknown notification permission: {permission}")
        with self.lock:
            self.refresh()
            self.notification_permission = permission
            self.sync()

    def session_info(self) -> dict[str, Any]:
        self.refresh()
        return {
            "authenticated": self.authenticated,
            "email": self.user_email,
            "active_view": self.active_view,
            "last_saved": self.last_saved.isoformat(),
        }

    # ------------------------------------------------------------------
    # Agenda
    # ------------------------------------------------------------------

    def add_item(
        self,
        title: str,
        time: str | datetime,
        description: str = "",
        category: str = "work",
        alarm_enabled: bool = True,
    ) -> AgendaItem:
        title = (title or "").strip()
        if not title:
            raise ValueError("title is required")
        if not time:
            raise ValueError("time is required")
        item = AgendaItem(
            id=str(uuid.uuid4()),
            title=title,
            time=normalize_time(time),
            description=description or "",
            alarm_enabled=alarm_enabled,
            completed=False,
            category=validate_category(category),
        )
        with self.lock:
            self.refresh()
            self.items.append(item)
            self.sync()
        logger.info("Added agenda item %s (%s at %s)", item.id, item.title, item.time)
        return item

    def get_item(self, item_id: str) -> AgendaItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def list_items(self) -> list[AgendaItem]:
        self.refresh()
        return sorted(self.items, key=lambda i: i.scheduled_at)

    def pending_count(self) -> int:
        self.refresh()
        return sum(1 for i in self.items if not i.completed)

    def toggle_complete(self, item_id: str) -> AgendaItem:
        with self.lock:
            self.refresh()
            item = self.get_item(item_id)
            item.completed = not item.completed
            self.sync()
        return item

    def toggle_alarm(self, item_id: str) -> AgendaItem:
        """Flip the alarm flag and re-arm the alarm."""
        with self.lock:
            self.refresh()
            item = self.get_item(item_id)
            item.alarm_enabled = not item.alarm_enabled
            self.triggered.discard(item_id)
            self.sync()
        return item

    def remove_item(self, item_id: str) -> None:
        with self.lock:
            self.refresh()
            self.get_item(item_id)
            self.items = [i for i in self.items if i.id != item_id]
            self.triggered.discard(item_id)
            self.sync()
        logger.info("Removed agenda item %s", item_id)

    # ------------------------------------------------------------------
    # Alarms
    # ------------------------------------------------------------------

    def is_triggered(self, item_id: str) -> bool:
        return item_id in self.triggered

    def mark_triggered(self, item_id: str) -> None:
        with self.lock:
            self.refresh()
            self.triggered.add(item_id)
            self.sync()


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


# ------------------------------------------------------------------
# Process-wide instance
# ------------------------------------------------------------------

_workspace: Workspace | None = None


def open_workspace(cfg: dict[str, Any]) -> Workspace:
    return Workspace(LocalStore(store_path(cfg)), cfg["auth"]["allowed_domain"])


def get_workspace() -> Workspace:
    """Return the shared workspace, loading it from the configured store on first use."""
    global _workspace
    if _workspace is None:
        _workspace = open_workspace(load_config())
    return _workspace


def reset_workspace() -> None:
    global _workspace
    _workspace = None
