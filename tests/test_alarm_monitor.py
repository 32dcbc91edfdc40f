"""Tests for the alarm monitor and the notifier's delivery channels."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from src.common.workspace import Workspace
from src.monitor.alarm_monitor import AlarmMonitor, due_alarms
from src.monitor.notifier import Notifier

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat()


@pytest.fixture()
def monitor(workspace: Workspace, no_desktop_notifications) -> AlarmMonitor:
    return AlarmMonitor(workspace, Notifier(workspace), interval=0.01)


class TestDueAlarms:
    def test_filters_disabled_completed_triggered_and_future(self, workspace: Workspace) -> None:
        due = workspace.add_item("Due", _iso(NOW - timedelta(minutes=1)))
        disabled = workspace.add_item("Disabled", _iso(NOW - timedelta(minutes=1)), alarm_enabled=False)
        done = workspace.add_item("Done", _iso(NOW - timedelta(minutes=1)))
        workspace.toggle_complete(done.id)
        fired = workspace.add_item("Fired", _iso(NOW - timedelta(minutes=1)))
        workspace.mark_triggered(fired.id)
        workspace.add_item("Future", _iso(NOW + timedelta(minutes=1)))

        result = due_alarms(workspace.items, workspace.triggered, NOW)
        assert [i.id for i in result] == [due.id]
        assert disabled.id not in {i.id for i in result}

    def test_exact_time_is_due(self, workspace: Workspace) -> None:
        item = workspace.add_item("Now", _iso(NOW))
        assert due_alarms(workspace.items, set(), NOW) == [item]


class TestCheck:
    def test_past_item_fires_once(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        item = workspace.add_item("Weekly Sync", _iso(NOW - timedelta(minutes=5)), description="Room 4")

        assert monitor.check(NOW) == [item]
        assert monitor.check(NOW) == []
        assert monitor.check(NOW + timedelta(minutes=1)) == []
        assert workspace.is_triggered(item.id)

        dialogs = monitor.notifier.drain_dialogs()
        assert len(dialogs) == 1
        assert dialogs[0]["message"] == "ALARM: Weekly Sync\nRoom 4"
        assert monitor.notifier.drain_dialogs() == []

    def test_completed_item_never_fires(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        item = workspace.add_item("Done", _iso(NOW - timedelta(minutes=5)))
        workspace.toggle_complete(item.id)
        assert monitor.check(NOW) == []
        assert monitor.notifier.pending_dialogs() == 0

    def test_toggling_alarm_rearms(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        item = workspace.add_item("Call", _iso(NOW - timedelta(minutes=5)))
        assert monitor.check(NOW) == [item]

        workspace.toggle_alarm(item.id)
        assert monitor.check(NOW) == []
        workspace.toggle_alarm(item.id)
        assert monitor.check(NOW) == [item]
        assert monitor.notifier.pending_dialogs() == 2

    def test_future_item_fires_when_due(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        item = workspace.add_item("Later", _iso(NOW + timedelta(seconds=30)))
        assert monitor.check(NOW) == []
        assert monitor.check(NOW + timedelta(seconds=30)) == [item]

    def test_nothing_fires_while_logged_out(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        workspace.add_item("Due", _iso(NOW - timedelta(minutes=5)))
        workspace.logout()
        assert monitor.check(NOW) == []
        assert workspace.triggered == set()

    def test_triggered_state_persisted(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        from src.common.state import LocalStore

        item = workspace.add_item("Due", _iso(NOW - timedelta(minutes=5)))
        monitor.check(NOW)

        reopened = Workspace(LocalStore(workspace.store.path))
        fresh = AlarmMonitor(reopened, Notifier(reopened))
        assert fresh.check(NOW) == []
        assert reopened.is_triggered(item.id)

    def test_suppress_overdue(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        past = workspace.add_item("Past", _iso(NOW - timedelta(hours=1)))
        future = workspace.add_item("Future", _iso(NOW + timedelta(hours=1)))

        assert monitor.suppress_overdue(NOW) == [past.id]
        assert monitor.check(NOW) == []
        assert monitor.check(NOW + timedelta(hours=1)) == [future]
        assert monitor.notifier.pending_dialogs() == 1


class TestNotifier:
    def test_default_permission_requests_then_falls_back_to_dialog(
        self, workspace: Workspace, no_desktop_notifications
    ) -> None:
        notifier = Notifier(workspace)
        item = workspace.add_item("A", _iso(NOW))
        assert notifier.alert(item) == "dialog"
        assert workspace.notification_permission == "denied"

    def test_granted_permission_sends_notification(self, workspace: Workspace) -> None:
        workspace.set_notification_permission("granted")
        notifier = Notifier(workspace, icon="/tmp/icon.png")
        item = workspace.add_item("Standup", _iso(NOW), description="Daily")

        with patch("src.monitor.notifier.send_desktop_notification", return_value=True) as send:
            assert notifier.alert(item) == "notification"

        send.assert_called_once_with("Alarm: Standup", "Daily", "/tmp/icon.png")
        assert notifier.pending_dialogs() == 0

    def test_failed_notification_falls_back_to_dialog(self, workspace: Workspace) -> None:
        workspace.set_notification_permission("granted")
        notifier = Notifier(workspace)
        item = workspace.add_item("Standup", _iso(NOW))

        with patch("src.monitor.notifier.send_desktop_notification", return_value=False):
            assert notifier.alert(item) == "dialog"
        assert notifier.pending_dialogs() == 1

    def test_denied_stays_denied(self, workspace: Workspace) -> None:
        workspace.set_notification_permission("denied")
        with patch("src.monitor.notifier._backend", return_value="notify-send"):
            assert Notifier(workspace).request_permission() == "denied"

    def test_request_granted_with_backend(self, workspace: Workspace) -> None:
        with patch("src.monitor.notifier._backend", return_value="notify-send"):
            assert Notifier(workspace).request_permission() == "granted"
        assert workspace.notification_permission == "granted"


class TestLoop:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, monitor: AlarmMonitor, workspace: Workspace) -> None:
        item = workspace.add_item("Due", _iso(datetime.now(timezone.utc) - timedelta(minutes=1)))

        monitor.start()
        assert monitor.running
        for _ in range(100):
            if monitor.notifier.pending_dialogs():
                break
            await asyncio.sleep(0.01)
        await monitor.stop()

        assert not monitor.running
        assert workspace.is_triggered(item.id)
        assert monitor.notifier.pending_dialogs() == 1

    @pytest.mark.asyncio
    async def test_start_without_catch_up_suppresses(self, workspace: Workspace, no_desktop_notifications) -> None:
        item = workspace.add_item("Missed", _iso(datetime.now(timezone.utc) - timedelta(hours=2)))
        monitor = AlarmMonitor(workspace, Notifier(workspace), interval=0.01, catch_up=False)

        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()

        assert workspace.is_triggered(item.id)
        assert monitor.notifier.pending_dialogs() == 0

    @pytest.mark.asyncio
    async def test_loop_survives_check_errors(self, monitor: AlarmMonitor) -> None:
        calls = []

        def boom(now=None):
            calls.append(now)
            raise RuntimeError("disk full")

        with patch.object(monitor, "check", side_effect=boom):
            monitor.start()
            await asyncio.sleep(0.05)
            assert monitor.running
            await monitor.stop()
        assert len(calls) >= 2


class TestSharedStoreAlarms:
    def test_alarm_fired_by_cli_does_not_fire_again_in_server(
        self, workspace: Workspace, no_desktop_notifications
    ) -> None:
        from src.common.state import LocalStore

        server = AlarmMonitor(workspace, Notifier(workspace))
        item = workspace.add_item("Standup", _iso(NOW - timedelta(minutes=5)))

        cli_ws = Workspace(LocalStore(workspace.store.path))
        cli = AlarmMonitor(cli_ws, Notifier(cli_ws))

        fired = len(cli.check(NOW)) + len(server.check(NOW))
        assert fired == 1
        assert workspace.is_triggered(item.id)
        assert server.notifier.pending_dialogs() == 0


class TestSlowNotifications:
    @pytest.mark.asyncio
    async def test_slow_notification_command_does_not_block_event_loop(self, workspace: Workspace) -> None:
        workspace.set_notification_permission("granted")
        workspace.add_item("Standup", _iso(datetime.now(timezone.utc) - timedelta(minutes=1)))
        sent = []

        def slow_send(title, message, icon=None):
            time.sleep(0.5)
            sent.append(title)
            return True

        monitor = AlarmMonitor(workspace, Notifier(workspace), interval=0.01)
        with patch("src.monitor.notifier.send_desktop_notification", side_effect=slow_send):
            monitor.start()
            await asyncio.sleep(0.05)

            started = time.monotonic()
            await asyncio.sleep(0.05)
            elapsed = time.monotonic() - started

            for _ in range(200):
                if sent:
                    break
                await asyncio.sleep(0.01)
            await monitor.stop()

        assert elapsed < 0.3
        assert sent == ["Alarm: Standup"]
