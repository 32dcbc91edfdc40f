"""Password generator with a simple length/character-class strength heuristic."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any

CHARSETS: dict[str, str] = {
    "uppercase": "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    "lowercase": "abcdefghijklmnopqrstuvwxyz",
    "numbers": "0123456789",
    "symbols": "!@#$%^&*()_+-=[]{}|;:,.<>?",
}

MIN_LENGTH = 8
MAX_LENGTH = 32

_STRENGTH_LEVELS: list[dict[str, Any]] = [
    {"score": 0, "label": "Too Weak", "color": "red"},
    {"score": 20, "label": "Weak", "color": "red"},
    {"score": 40, "label": "Medium", "color": "orange"},
    {"score": 60, "label": "Good", "color": "yellow"},
    {"score": 80, "label": "Strong", "color": "green"},
    {"score": 100, "label": "Very Strong", "color": "emerald"},
]

_rng = secrets.SystemRandom()


@dataclass
class PasswordOptions:
    length: int = 16
    uppercase: bool = True
    lowercase: bool = True
    numbers: bool = True
    symbols: bool = True

    def selected_classes(self) -> list[str]:
        return [name for name in CHARSETS if getattr(self, name)]


def generate_password(options: PasswordOptions) -> str:
    """Generate a password containing at least one character of each selected class.

    Returns an empty string when no class is selected.
    """
    classes = options.selected_classes()
    if not classes:
        return ""
    if options.length < len(classes):
        raise ValueError(
            f"length {options.length} is too short for {len(classes)} character classes"
        )

    charset = "".join(CHARSETS[c] for c in classes)
    chars = [_rng.choice(CHARSETS[c]) for c in classes]
    chars.extend(_rng.choice(charset) for _ in range(options.length - len(chars)))
    _rng.shuffle(chars)
    return "".join(chars)


def password_strength(options: PasswordOptions) -> dict[str, Any]:
    """Score the configuration (not the generated string) from 0 to 100."""
    score = 0
    for threshold in (8, 12, 16):
        if options.length >= threshold:
            score += 1

    class_count = len(options.selected_classes())
    if class_count >= 2:
        score += 1
    if class_count >= 4:
        score += 1

    return dict(_STRENGTH_LEVELS[score])
