"""Static social links directory for the Connect panel."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class SocialLink:
    id: str
    name: str
    url: str
    icon: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


SOCIALS: tuple[SocialLink, ...] = (
    SocialLink("github", "GitHub", "https://github.com", "fab fa-github", "gray-800"),
    SocialLink("twitter", "Twitter", "https://twitter.com", "fab fa-twitter", "sky-500"),
    SocialLink("linkedin", "LinkedIn", "https://linkedin.com", "fab fa-linkedin-in", "blue-700"),
    SocialLink("instagram", "Instagram", "https://instagram.com", "fab fa-instagram", "pink-600"),
    SocialLink("portfolio", "Portfolio", "https://example.com", "fas fa-briefcase", "indigo-600"),
    SocialLink("youtube", "YouTube", "https://youtube.com", "fab fa-youtube", "red-600"),
    SocialLink("buzzer", "Buzzer", "https://buzzer.com", "fas fa-bullhorn", "amber-500"),
)


def list_socials() -> list[dict[str, Any]]:
    return [s.to_dict() for s in SOCIALS]
