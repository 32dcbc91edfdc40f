"""Alarm monitor -- fires each due agenda alarm exactly once.

A single asyncio task wakes every ``alarms.interval_seconds`` and compares
every alarm-enabled, not-completed item against the wall clock. A fired item
is added to the workspace's triggered set before the alert goes out, so it
never fires twice until its alarm is toggled off and on again.

Usage::

    python3 -m src.dashboard.cli alarms check
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable

from src.agenda.models import AgendaItem
from src.common.workspace import Workspace
from src.monitor.notifier import Notifier

logger = logging.getLogger("smartplan.alarms")

DEFAULT_INTERVAL = 10.0


def due_alarms(
    items: Iterable[AgendaItem],
    triggered: set[str],
    now: datetime,
) -> list[AgendaItem]:
    """Items whose alarm should fire at ``now``."""
    if now.tzinfo is None:
        now = now.astimezone()
    due: list[AgendaItem] = []
    for item in items:
        if not item.alarm_enabled or item.completed:
            continue
        if item.id in triggered:
            continue
        if item.scheduled_at <= now:
            due.append(item)
    return due


class AlarmMonitor:
    """Periodic alarm poll over a workspace."""

    def __init__(
        self,
        workspace: Workspace,
        notifier: Notifier,
        interval: float = DEFAULT_INTERVAL,
        catch_up: bool = True,
    ) -> None:
        self.workspace = workspace
        self.notifier = notifier
        self.interval = interval
        self.catch_up = catch_up
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(self, now: datetime | None = None) -> list[AgendaItem]:
        """Run one tick. Returns the items that fired.

        Blocking (store I/O and the notification command): the loop runs it
        in a worker thread.
        """
        ws = self.workspace
        with ws.lock:
            ws.refresh()
            if not ws.authenticated:
                return []
            now = now or datetime.now(timezone.utc)
            fired = due_alarms(ws.items, ws.triggered, now)
            if fired:
                ws.triggered.update(item.id for item in fired)
                ws.sync()
        for item in fired:
            channel = self.notifier.alert(item)
            logger.info("Alarm fired: %s (%s) via %s", item.title, item.id, channel)
        return fired

    def suppress_overdue(self, now: datetime | None = None) -> list[str]:
        """Mark already-overdue alarms as triggered without alerting."""
        now = now or datetime.now(timezone.utc)
        ws = self.workspace
        with ws.lock:
            ws.refresh()
            overdue = due_alarms(ws.items, ws.triggered, now)
            if overdue:
                ws.triggered.update(item.id for item in overdue)
                ws.sync()
        if overdue:
            logger.info("Suppressed %d overdue alarm(s) from before startup", len(overdue))
        return [item.id for item in overdue]

    def start(self) -> None:
        if self.running:
            return
        if not self.catch_up:
            self.suppress_overdue()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="alarm-monitor")
        logger.info("Alarm monitor started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Alarm monitor stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await asyncio.to_thread(self.check)
            except Exception:
                logger.exception("Alarm check failed, will retry next tick")


# ------------------------------------------------------------------
# Process-wide instance
# ------------------------------------------------------------------

_monitor: AlarmMonitor | None = None


def get_alarm_monitor() -> AlarmMonitor:
    """Monitor bound to the shared workspace, configured from config.yaml."""
    global _monitor
    if _monitor is None:
        from src.common.config import load_config
        from src.common.workspace import get_workspace

        cfg = load_config()
        ws = get_workspace()
        _monitor = AlarmMonitor(
            ws,
            Notifier(ws, icon=cfg["notifications"].get("icon")),
            interval=cfg["alarms"]["interval_seconds"],
            catch_up=bool(cfg["alarms"].get("catch_up", True)),
        )
    return _monitor


def reset_alarm_monitor() -> None:
    global _monitor
    _monitor = None
