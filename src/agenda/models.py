"""Agenda item model and time normalization."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

CATEGORIES = ("work", "personal", "health", "other")


@dataclass
class AgendaItem:
    id: str
    title: str
    time: str
    description: str = ""
    alarm_enabled: bool = True
    completed: bool = False
    category: str = "work"

    @property
    def scheduled_at(self) -> datetime:
        return parse_time(self.time)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in the stored agenda array."""
        d = asdict(self)
        return {
            "id": d["id"],
            "title": d["title"],
            "description": d["description"],
            "time": d["time"],
            "alarmEnabled": d["alarm_enabled"],
            "completed": d["completed"],
            "category": d["category"],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgendaItem:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            time=data["time"],
            description=data.get("description", ""),
            alarm_enabled=bool(data.get("alarmEnabled", data.get("alarm_enabled", True))),
            completed=bool(data.get("completed", False)),
            category=data.get("category", "work"),
        )


def parse_time(value: str | datetime) -> datetime:
    """Parse an ISO timestamp into an aware datetime.

    Naive values (e.g. from a ``datetime-local`` input) are local time.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        from dateutil import parser as dtparser
        try:
            dt = dtparser.isoparse(value.strip())
        except (AttributeError, ValueError) as exc:
            raise ValueError(f"Invalid time: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def normalize_time(value: str | datetime) -> str:
    """Return the ISO UTC form, e.g. ``2026-03-01T09:30:00.000Z``."""
    dt = parse_time(value).astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_category(category: str) -> str:
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category {category!r}; expected one of {', '.join(CATEGORIES)}")
    return category
