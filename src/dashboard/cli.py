"""Command-line interface for SmartPlan.

Usage:
    python3 -m src.dashboard.cli serve --port 8765
    python3 -m src.dashboard.cli agenda list
    python3 -m src.dashboard.cli agenda add "Weekly Sync" --time 2026-03-02T09:30 --category work
    python3 -m src.dashboard.cli agenda done <id>
    python3 -m src.dashboard.cli agenda remove <id>
    python3 -m src.dashboard.cli alarms check
    python3 -m src.dashboard.cli password --length 20 --no-symbols
"""

from __future__ import annotations

import argparse
import sys

from src.agenda.models import CATEGORIES
from src.common.config import load_config, setup_logging
from src.common.workspace import open_workspace
from src.tools.password import PasswordOptions, generate_password, password_strength


def cmd_serve(args: argparse.Namespace, cfg: dict) -> None:
    import uvicorn
    uvicorn.run("src.dashboard.app:app", host=args.host, port=args.port, log_level="info")


def cmd_agenda_list(args: argparse.Namespace, cfg: dict) -> None:
    ws = open_workspace(cfg)
    items = ws.list_items()
    if not items:
        print("No agenda items yet.")
        return
    print(f"{ws.pending_count()} pending task(s):\n")
    for item in items:
        mark = "x" if item.completed else " "
        bell = "alarm" if item.alarm_enabled else "     "
        when = item.scheduled_at.astimezone().strftime("%Y-%m-%d %H:%M")
        print(f"  [{mark}] {when}  {bell}  [{item.category:8s}] {item.title}")
        print(f"         {item.id}")


def cmd_agenda_add(args: argparse.Namespace, cfg: dict) -> None:
    ws = open_workspace(cfg)
    item = ws.add_item(
        title=" ".join(args.title),
        time=args.time,
        description=args.description,
        category=args.category,
        alarm_enabled=not args.no_alarm,
    )
    print(f"Added {item.id}: {item.title} at {item.time}")


def cmd_agenda_done(args: argparse.Namespace, cfg: dict) -> None:
    ws = open_workspace(cfg)
    item = ws.toggle_complete(args.id)
    print(f"{item.title}: {'completed' if item.completed else 'pending'}")


def cmd_agenda_remove(args: argparse.Namespace, cfg: dict) -> None:
    ws = open_workspace(cfg)
    ws.remove_item(args.id)
    print(f"Removed {args.id}")


def cmd_alarms_check(args: argparse.Namespace, cfg: dict) -> None:
    from src.monitor.alarm_monitor import AlarmMonitor
    from src.monitor.notifier import Notifier

    ws = open_workspace(cfg)
    notifier = Notifier(ws, icon=cfg["notifications"].get("icon"))
    fired = AlarmMonitor(ws, notifier).check()
    for dialog in notifier.drain_dialogs():
        print(dialog["message"])
        print()
    print(f"{len(fired)} alarm(s) fired.")


def cmd_password(args: argparse.Namespace, cfg: dict) -> None:
    options = PasswordOptions(
        length=args.length,
        uppercase=not args.no_upper,
        lowercase=not args.no_lower,
        numbers=not args.no_numbers,
        symbols=not args.no_symbols,
    )
    password = generate_password(options)
    if not password:
        print("Select at least one character class.", file=sys.stderr)
        sys.exit(1)
    print(password)
    print(f"Strength: {password_strength(options)['label']}", file=sys.stderr)


def main() -> None:
    parser = argparse.ArgumentParser(prog="smartplan", description="SmartPlan dashboard")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")

    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the dashboard API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8765)

    p_agenda = sub.add_parser("agenda", help="Manage agenda items")
    agenda_sub = p_agenda.add_subparsers(dest="agenda_command", required=True)
    agenda_sub.add_parser("list", help="List items by time")
    p_add = agenda_sub.add_parser("add", help="Add an item")
    p_add.add_argument("title", nargs="+")
    p_add.add_argument("--time", required=True, help="ISO time, e.g. 2026-03-02T09:30")
    p_add.add_argument("--description", default="")
    p_add.add_argument("--category", default="work", choices=CATEGORIES)
    p_add.add_argument("--no-alarm", action="store_true")
    p_done = agenda_sub.add_parser("done", help="Toggle completion")
    p_done.add_argument("id")
    p_rm = agenda_sub.add_parser("remove", help="Remove an item")
    p_rm.add_argument("id")

    p_alarms = sub.add_parser("alarms", help="Alarm monitor")
    alarms_sub = p_alarms.add_subparsers(dest="alarms_command", required=True)
    alarms_sub.add_parser("check", help="Run a single alarm check")

    p_pw = sub.add_parser("password", help="Generate a password")
    p_pw.add_argument("--length", type=int, default=16)
    p_pw.add_argument("--no-upper", action="store_true")
    p_pw.add_argument("--no-lower", action="store_true")
    p_pw.add_argument("--no-numbers", action="store_true")
    p_pw.add_argument("--no-symbols", action="store_true")

    args = parser.parse_args()
    cfg = load_config(args.config)
    setup_logging(cfg)

    dispatch = {
        ("serve", None): cmd_serve,
        ("agenda", "list"): cmd_agenda_list,
        ("agenda", "add"): cmd_agenda_add,
        ("agenda", "done"): cmd_agenda_done,
        ("agenda", "remove"): cmd_agenda_remove,
        ("alarms", "check"): cmd_alarms_check,
        ("password", None): cmd_password,
    }
    sub_command = getattr(args, f"{args.command}_command", None)
    try:
        dispatch[(args.command, sub_command)](args, cfg)
    except KeyError as exc:
        print(f"Agenda item not found: {exc}", file=sys.stderr)
        sys.exit(1)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
