"""CrisisFusion ServiceConfig and environment-based configuration loading.

All runtime configuration flows through ServiceConfig. Resolvers and
aggregators receive it at construction and never read the environment
themselves. API keys come exclusively from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

from config.defaults import (
    ANTHROPIC_MODEL,
    CACHE_TTL_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_UPDATE_LOCATION,
    EMERGENCY_KEYWORDS,
    ENGAGEMENT_HIGH_THRESHOLD,
    ENGAGEMENT_MEDIUM_THRESHOLD,
    ENGAGEMENT_METRIC_KEYS,
    FANOUT_TIMEOUT,
    GEOCODING_REQUEST_TIMEOUT,
    IMAGE_FETCH_TIMEOUT,
    IMAGE_MAX_BYTES,
    LLM_BACKEND,
    LLM_TEMPERATURE,
    NEARBY_RADIUS_KM,
    NEEDS_KEYWORDS,
    NOMINATIM_REQUEST_TIMEOUT,
    NOTIFIER_MAX_WORKERS,
    OFFICIAL_PUSH_INTERVAL,
    OFFICIAL_REQUEST_TIMEOUT,
    OLLAMA_API_KEY,
    OLLAMA_HOST,
    OLLAMA_MODEL,
    PROVIDER_CHAIN_TIMEOUT,
    RECORD_STORE_BACKEND,
    RECORD_STORE_PATH,
    REVERSE_GEOCODING_TIMEOUT,
    SOCIAL_DEFAULT_KEYWORDS,
    SOCIAL_MAX_RESULTS,
    SOCIAL_REQUEST_TIMEOUT,
    SOCIAL_SIMULATION_INTERVAL,
    SUBSTITUTE_LATITUDE,
    SUBSTITUTE_LONGITUDE,
    URGENT_KEYWORDS,
)

# Load .env file if present; silently skip if missing
load_dotenv()


@dataclass
class PriorityRules:
    """Keyword sets and engagement thresholds for social signal priority."""

    urgent_keywords: Tuple[str, ...] = URGENT_KEYWORDS
    needs_keywords: Tuple[str, ...] = NEEDS_KEYWORDS
    high_engagement: int = ENGAGEMENT_HIGH_THRESHOLD
    medium_engagement: int = ENGAGEMENT_MEDIUM_THRESHOLD
    engagement_keys: Tuple[str, ...] = ENGAGEMENT_METRIC_KEYS

    def __post_init__(self) -> None:
        if self.medium_engagement > self.high_engagement:
            raise ValueError(
                "PriorityRules: medium_engagement must not exceed high_engagement, "
                f"got {self.medium_engagement} > {self.high_engagement}"
            )


@dataclass
class ServiceConfig:
    """Single configuration object injected into every resolver and aggregator.

    All tuneable thresholds, API keys, model names, and paths live here.
    Never use module-level globals or hard-coded values in resolver code.
    """

    # ── Cache ──────────────────────────────────────────────────────────────────
    cache_ttl_seconds: int = CACHE_TTL_SECONDS

    # ── Record store ───────────────────────────────────────────────────────────
    record_store_backend: str = field(
        default_factory=lambda: os.getenv("RECORD_STORE_BACKEND", RECORD_STORE_BACKEND)
    )
    record_store_path: str = field(
        default_factory=lambda: os.getenv("RECORD_STORE_PATH", RECORD_STORE_PATH)
    )

    # ── Geocoding credentials (from environment only) ──────────────────────────
    google_maps_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("GOOGLE_MAPS_API_KEY")
    )
    mapbox_access_token: Optional[str] = field(
        default_factory=lambda: os.getenv("MAPBOX_ACCESS_TOKEN")
    )
    geocoding_timeout: int = GEOCODING_REQUEST_TIMEOUT
    nominatim_timeout: int = NOMINATIM_REQUEST_TIMEOUT
    reverse_geocoding_timeout: int = REVERSE_GEOCODING_TIMEOUT
    provider_chain_timeout: float = PROVIDER_CHAIN_TIMEOUT
    substitute_latitude: float = SUBSTITUTE_LATITUDE
    substitute_longitude: float = SUBSTITUTE_LONGITUDE
    # When False, exhausting every geocoder yields a "failed" result instead of
    # the substitute reference point
    geocode_use_substitute: bool = True
    nearby_radius_km: float = NEARBY_RADIUS_KM

    # ── LLM backend ───────────────────────────────────────────────────────────
    llm_backend: str = field(default_factory=lambda: os.getenv("LLM_BACKEND", LLM_BACKEND))
    anthropic_model: str = field(
        default_factory=lambda: os.getenv("ANTHROPIC_MODEL", ANTHROPIC_MODEL)
    )
    anthropic_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY")
    )
    ollama_model: str = field(default_factory=lambda: os.getenv("OLLAMA_MODEL", OLLAMA_MODEL))
    ollama_host: str = field(default_factory=lambda: os.getenv("OLLAMA_HOST", OLLAMA_HOST))
    ollama_api_key: str = field(
        default_factory=lambda: os.getenv("OLLAMA_API_KEY", OLLAMA_API_KEY)
    )
    llm_temperature: float = LLM_TEMPERATURE
    image_fetch_timeout: int = IMAGE_FETCH_TIMEOUT
    image_max_bytes: int = IMAGE_MAX_BYTES

    # ── Social feeds ───────────────────────────────────────────────────────────
    twitter_bearer_token: Optional[str] = field(
        default_factory=lambda: os.getenv("TWITTER_BEARER_TOKEN")
    )
    enable_bluesky: bool = field(
        default_factory=lambda: os.getenv("ENABLE_BLUESKY", "true").lower() == "true"
    )
    social_request_timeout: int = SOCIAL_REQUEST_TIMEOUT
    social_max_results: int = SOCIAL_MAX_RESULTS
    social_default_keywords: Tuple[str, ...] = SOCIAL_DEFAULT_KEYWORDS
    social_simulation_interval: float = SOCIAL_SIMULATION_INTERVAL
    priority_rules: PriorityRules = field(default_factory=PriorityRules)

    # ── Official updates ───────────────────────────────────────────────────────
    official_request_timeout: int = OFFICIAL_REQUEST_TIMEOUT
    emergency_keywords: Tuple[str, ...] = EMERGENCY_KEYWORDS
    default_update_location: str = DEFAULT_UPDATE_LOCATION
    official_push_interval: float = OFFICIAL_PUSH_INTERVAL

    # ── Fan-out ────────────────────────────────────────────────────────────────
    fanout_timeout: float = FANOUT_TIMEOUT

    # ── Notifications ──────────────────────────────────────────────────────────
    notifier_max_workers: int = NOTIFIER_MAX_WORKERS

    # ── Logging ────────────────────────────────────────────────────────────────
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL))

    # ── Test mode ─────────────────────────────────────────────────────────────
    # When True, no network providers are built and every resolver serves
    # substitute data
    test_mode: bool = False

    def __post_init__(self) -> None:
        if self.cache_ttl_seconds <= 0:
            raise ValueError(f"cache_ttl_seconds must be positive, got {self.cache_ttl_seconds}")
        self.llm_backend = self.llm_backend.lower()
