"""Social signal and official update models for CrisisFusion.

Provider adapters normalize raw feed items into these shapes; aggregators
never see provider-specific JSON.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class Priority:
    """Priority classes assigned to social signals, most severe first."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    ALERTING = (URGENT, HIGH)
    ORDER = (URGENT, HIGH, MEDIUM, LOW)


@dataclass
class SocialSignal:
    """A single social-media post relevant to a disaster.

    ``priority`` is derived by the SocialSignalAggregator from content and
    metrics; adapters leave it empty.
    """

    id: str
    platform: str
    content: str
    author: str
    created_at: str
    priority: str = ""
    metrics: Dict[str, Any] = field(default_factory=dict)
    url: Optional[str] = None

    @property
    def dedup_key(self) -> tuple:
        return (self.platform, self.id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SocialSignal":
        return cls(
            id=str(data.get("id", "")),
            platform=data.get("platform", ""),
            content=data.get("content", ""),
            author=data.get("author", ""),
            created_at=data.get("created_at", ""),
            priority=data.get("priority", ""),
            metrics=dict(data.get("metrics") or {}),
            url=data.get("url"),
        )


@dataclass
class OfficialUpdate:
    """An update published by an official agency (FEMA, Red Cross, NWS)."""

    id: str
    source: str
    title: str
    date: str
    description: str
    url: Optional[str] = None
    severity: Optional[str] = None
    scraped_at: str = ""

    @property
    def searchable_text(self) -> str:
        return f"{self.title} {self.description}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OfficialUpdate":
        return cls(
            id=str(data.get("id", "")),
            source=data.get("source", ""),
            title=data.get("title", ""),
            date=data.get("date", ""),
            description=data.get("description", ""),
            url=data.get("url"),
            severity=data.get("severity"),
            scraped_at=data.get("scraped_at", ""),
        )


def snippet(text: str, limit: int) -> str:
    """Text cut to ``limit`` characters, with "..." marking a cut."""
    text = text or ""
    return text if len(text) <= limit else text[:limit] + "..."


@dataclass
class PlatformSummary:
    """Per-platform rollup of a disaster's social signals."""

    platform: str
    total_reports: int = 0
    priority_counts: Dict[str, int] = field(
        default_factory=lambda: {p: 0 for p in Priority.ORDER}
    )
    recent_reports: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class KeywordMentions:
    """How often one keyword appears in a disaster's social signals."""

    keyword: str
    total_mentions: int = 0
    priority_breakdown: Dict[str, int] = field(default_factory=dict)
    sample_reports: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SourceSummary:
    """Per-agency rollup of a disaster's official updates.

    ``latest_update`` is the update with the newest parseable date; when no
    date parses it is the first update seen.
    """

    source: str
    total_updates: int = 0
    latest_update: Optional[OfficialUpdate] = None
    recent_updates: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
