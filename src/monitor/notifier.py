"""Alarm alert delivery: desktop notification when permitted, dialog otherwise.

Desktop notifications go through ``osascript`` on macOS and ``notify-send``
elsewhere. Dialog alerts are queued for the UI to pop; ``drain_dialogs``
hands them over exactly once.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from collections import deque
from datetime import datetime
from typing import Any

from src.agenda.models import AgendaItem
from src.common.workspace import Workspace

logger = logging.getLogger("smartplan.notifier")


def _escape(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


def _backend() -> str | None:
    """Name of the available desktop notification command, if any."""
    if sys.platform == "darwin" and shutil.which("osascript"):
        return "osascript"
    if shutil.which("notify-send"):
        return "notify-send"
    return None


def send_desktop_notification(title: str, message: str, icon: str | None = None) -> bool:
    """Send a desktop notification. Returns False if no backend could deliver it."""
    backend = _backend()
    if backend == "osascript":
        cmd = [
            "osascript", "-e",
            f'display notification "{_escape(message)}" with title "{_escape(title)}"',
        ]
    elif backend == "notify-send":
        cmd = ["notify-send", title, message]
        if icon:
            cmd[1:1] = ["--icon", icon]
    else:
        return False

    try:
        result = subprocess.run(cmd, capture_output=True, timeout=10)
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Failed to send notification: %s", exc)
        return False
    if result.returncode != 0:
        logger.warning("Notification command exited with %s", result.returncode)
        return False
    return True


class Notifier:
    """Delivers alarm alerts according to the workspace's notification permission."""

    def __init__(self, workspace: Workspace, icon: str | None = None) -> None:
        self.workspace = workspace
        self.icon = icon
        self._dialogs: deque[dict[str, Any]] = deque(maxlen=100)

    @property
    def permission(self) -> str:
        return self.workspace.notification_permission

    def request_permission(self) -> str:
        """Grant when a desktop backend exists; a denied permission stays denied."""
        if self.permission == "denied":
            return "denied"
        permission = "granted" if _backend() else "denied"
        self.workspace.set_notification_permission(permission)
        logger.info("Notification permission: %s", permission)
        return permission

    def alert(self, item: AgendaItem) -> str:
        """Alert the user about a due item. Returns the channel used."""
        if self.permission == "granted":
            if send_desktop_notification(f"Alarm: {item.title}", item.description, self.icon):
                logger.info("Alarm notification sent for %s", item.id)
                return "notification"
        elif self.permission == "default":
            self.request_permission()

        self._dialogs.append({
            "id": item.id,
            "title": item.title,
            "message": f"ALARM: {item.title}\n{item.description}",
            "created_at": datetime.now().isoformat(),
        })
        logger.info("Alarm dialog queued for %s", item.id)
        return "dialog"

    def pending_dialogs(self) -> int:
        return len(self._dialogs)

    def drain_dialogs(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        while self._dialogs:
            out.append(self._dialogs.popleft())
        return out
