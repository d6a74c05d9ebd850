"""AI analysis data models for CrisisFusion.

Produced by the TextAnalysisResolver. The ``error`` constructors carry the
safe defaults used whenever the AI provider fails, so downstream code never
branches on analysis failure.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from config.defaults import NO_LOCATION_SENTINEL


class AnalysisSource:
    """Source tags for AI-derived results."""

    AI = "ai"
    ERROR = "error"


@dataclass
class LocationExtraction:
    """A location name extracted from free text.

    ``location`` equals NO_LOCATION_SENTINEL when the text names no place;
    callers treat that literal as "no location", not as a retryable error.
    """

    location: str
    source: str

    @property
    def found(self) -> bool:
        return self.location != NO_LOCATION_SENTINEL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationExtraction":
        return cls(location=data.get("location", NO_LOCATION_SENTINEL), source=data.get("source", ""))

    @classmethod
    def not_found(cls) -> "LocationExtraction":
        return cls(location=NO_LOCATION_SENTINEL, source=AnalysisSource.ERROR)


@dataclass
class AnalysisResult:
    """Structured analysis of a disaster description."""

    severity_level: str = "medium"
    disaster_type: str = "unknown"
    urgency_indicator: bool = False
    affected_areas: List[str] = field(default_factory=list)
    key_needs: List[str] = field(default_factory=list)
    source: str = AnalysisSource.ERROR
    analyzed_at: str = ""
    raw_response: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            severity_level=data.get("severity_level", "medium"),
            disaster_type=data.get("disaster_type", "unknown"),
            urgency_indicator=bool(data.get("urgency_indicator", False)),
            affected_areas=list(data.get("affected_areas") or []),
            key_needs=list(data.get("key_needs") or []),
            source=data.get("source", AnalysisSource.ERROR),
            analyzed_at=data.get("analyzed_at", ""),
            raw_response=data.get("raw_response"),
        )

    @classmethod
    def safe_default(cls, analyzed_at: str, raw_response: Optional[str] = None) -> "AnalysisResult":
        """Default-safe result: medium / unknown / not urgent / no areas / no needs."""
        return cls(source=AnalysisSource.ERROR, analyzed_at=analyzed_at, raw_response=raw_response)


@dataclass
class VerificationResult:
    """Authenticity assessment of a disaster image."""

    authenticity_score: int
    manipulation_detected: bool
    context_match: bool
    confidence_level: str
    reasoning: str
    source: str
    image_url: str = ""
    verified_at: str = ""
    raw_response: Optional[str] = None

    @property
    def verification_status(self) -> str:
        return "suspicious" if self.manipulation_detected else "verified"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerificationResult":
        return cls(
            authenticity_score=int(data.get("authenticity_score", 0)),
            manipulation_detected=bool(data.get("manipulation_detected", True)),
            context_match=bool(data.get("context_match", False)),
            confidence_level=data.get("confidence_level", "low"),
            reasoning=data.get("reasoning", ""),
            source=data.get("source", AnalysisSource.ERROR),
            image_url=data.get("image_url", ""),
            verified_at=data.get("verified_at", ""),
            raw_response=data.get("raw_response"),
        )

    @classmethod
    def fail_closed(cls, image_url: str, verified_at: str, reason: str) -> "VerificationResult":
        """Treat-as-suspicious result used when verification could not run."""
        return cls(
            authenticity_score=0,
            manipulation_detected=True,
            context_match=False,
            confidence_level="low",
            reasoning=reason,
            source=AnalysisSource.ERROR,
            image_url=image_url,
            verified_at=verified_at,
        )
