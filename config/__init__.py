"""CrisisFusion configuration package."""

from config.defaults import (
    ANTHROPIC_MODEL,
    CACHE_TTL_SECONDS,
    EMERGENCY_KEYWORDS,
    ENGAGEMENT_HIGH_THRESHOLD,
    ENGAGEMENT_MEDIUM_THRESHOLD,
    LLM_BACKEND,
    NEEDS_KEYWORDS,
    NO_LOCATION_SENTINEL,
    OLLAMA_MODEL,
    URGENT_KEYWORDS,
)
from config.settings import PriorityRules, ServiceConfig

__all__ = [
    "ServiceConfig",
    "PriorityRules",
    "CACHE_TTL_SECONDS",
    "URGENT_KEYWORDS",
    "NEEDS_KEYWORDS",
    "ENGAGEMENT_HIGH_THRESHOLD",
    "ENGAGEMENT_MEDIUM_THRESHOLD",
    "EMERGENCY_KEYWORDS",
    "NO_LOCATION_SENTINEL",
    "LLM_BACKEND",
    "ANTHROPIC_MODEL",
    "OLLAMA_MODEL",
]
