"""CrisisFusion: all default threshold values and configuration constants.

All tuneable values live here. Never hard-code magic numbers in source files.
Import constants from this module; override via ServiceConfig at runtime.
"""

# ── Cache ──────────────────────────────────────────────────────────────────────
# Default time-to-live for every cached provider resolution (seconds)
CACHE_TTL_SECONDS: int = 3600

# Record-store collection holding cache entries
CACHE_COLLECTION: str = "cache"

# ── Record store ───────────────────────────────────────────────────────────────
# Backend for entity records: "memory" or "json"
RECORD_STORE_BACKEND: str = "memory"

# Directory used by the JSON-file record store (one file per collection)
RECORD_STORE_PATH: str = "data/records"

# ── Provider timeouts (seconds) ────────────────────────────────────────────────
# Google Maps / Mapbox geocoding request timeout
GEOCODING_REQUEST_TIMEOUT: int = 10

# OpenStreetMap Nominatim is slower; it gets a longer budget
NOMINATIM_REQUEST_TIMEOUT: int = 15

# Reverse geocoding request timeout
REVERSE_GEOCODING_TIMEOUT: int = 10

# Wall-clock budget for one ProviderChain step (covers hung sockets)
PROVIDER_CHAIN_TIMEOUT: float = 15.0

# Social feed search request timeout
SOCIAL_REQUEST_TIMEOUT: int = 15

# Official-source scrape request timeout
OFFICIAL_REQUEST_TIMEOUT: int = 15

# Wall-clock budget for a whole fan-out round (social feeds / official sources)
FANOUT_TIMEOUT: float = 20.0

# Image download timeout for authenticity verification
IMAGE_FETCH_TIMEOUT: int = 10

# Largest image accepted for verification (bytes)
IMAGE_MAX_BYTES: int = 10 * 1024 * 1024

# ── Geocoding ──────────────────────────────────────────────────────────────────
# Substitute coordinates used when every geocoder fails. This is a fixed test
# reference point (New York City Hall area), not a real disaster location.
SUBSTITUTE_LATITUDE: float = 40.7128
SUBSTITUTE_LONGITUDE: float = -74.0060

# Decimal places used when building reverse-geocoding cache keys
REVERSE_GEOCODE_KEY_PRECISION: int = 4

# Earth radius used by the haversine distance (kilometres)
EARTH_RADIUS_KM: float = 6371.0

# Default search radius for nearby-resource queries (kilometres)
NEARBY_RADIUS_KM: float = 10.0

# User agent sent to OpenStreetMap and scraped sources
HTTP_USER_AGENT: str = "CrisisFusion/1.0 (+https://github.com/crisisfusion)"

GOOGLE_GEOCODE_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
MAPBOX_GEOCODE_URL: str = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"
NOMINATIM_SEARCH_URL: str = "https://nominatim.openstreetmap.org/search"
NOMINATIM_REVERSE_URL: str = "https://nominatim.openstreetmap.org/reverse"

# ── LLM backends ──────────────────────────────────────────────────────────────
# Default active LLM backend: "anthropic" or "ollama"
LLM_BACKEND: str = "ollama"

# Anthropic model identifier
ANTHROPIC_MODEL: str = "claude-sonnet-4-6"

# Ollama model identifier (must be vision-capable for image verification)
OLLAMA_MODEL: str = "gemma3:27b"

# Default Ollama server base URL
OLLAMA_HOST: str = "http://localhost:11434"

# Ollama Cloud API key; empty string disables auth headers
OLLAMA_API_KEY: str = ""

# Minimum max_tokens for structured extraction calls
LLM_MIN_MAX_TOKENS: int = 256

# Deterministic, low-temperature sampling for every analysis prompt
LLM_TEMPERATURE: float = 0.1

# Token budgets per operation
LLM_LOCATION_MAX_TOKENS: int = 100
LLM_ANALYSIS_MAX_TOKENS: int = 300
LLM_VERIFICATION_MAX_TOKENS: int = 500

# Longest answer accepted as a location name
LOCATION_MAX_CHARS: int = 120

# ── Text analysis ──────────────────────────────────────────────────────────────
# Literal sentinel meaning "the text names no location"
NO_LOCATION_SENTINEL: str = "No location found"

SEVERITY_LEVELS: tuple = ("low", "medium", "high", "critical")
CONFIDENCE_LEVELS: tuple = ("low", "medium", "high")

# ── Social signal priority ─────────────────────────────────────────────────────
# Any of these (case-insensitive substring) makes a signal "urgent"
URGENT_KEYWORDS: tuple = ("urgent", "emergency", "sos", "immediate", "critical", "help")

# Any of these makes a signal "high" when no urgent keyword matched
NEEDS_KEYWORDS: tuple = ("need", "assistance", "shelter", "medical", "food", "water")

# Engagement above this count → "high"
ENGAGEMENT_HIGH_THRESHOLD: int = 100

# Engagement above this count → "medium"
ENGAGEMENT_MEDIUM_THRESHOLD: int = 50

# Counters summed into the engagement total (Twitter and Bluesky spellings)
ENGAGEMENT_METRIC_KEYS: tuple = (
    "retweet_count",
    "like_count",
    "repost_count",
    "likeCount",
    "repostCount",
)

# Query terms used when a social search is issued without keywords
SOCIAL_DEFAULT_KEYWORDS: tuple = ("disaster", "emergency")

# Maximum posts requested per feed provider
SOCIAL_MAX_RESULTS: int = 50

TWITTER_SEARCH_URL: str = "https://api.twitter.com/2/tweets/search/recent"
BLUESKY_SEARCH_URL: str = "https://public.api.bsky.app/xrpc/app.bsky.feed.searchPosts"

# Interval between simulated real-time social signals (seconds)
SOCIAL_SIMULATION_INTERVAL: float = 30.0

# Platform summary: recent signals kept per platform and their content snippet length
PLATFORM_SUMMARY_RECENT: int = 10
PLATFORM_SUMMARY_SNIPPET: int = 100

# Keyword analysis: sample signals kept per keyword and their content snippet length
KEYWORD_SAMPLE_SIZE: int = 5
KEYWORD_SAMPLE_SNIPPET: int = 150

# ── Official updates ───────────────────────────────────────────────────────────
# An update containing any of these is an emergency alert
EMERGENCY_KEYWORDS: tuple = ("emergency", "warning", "evacuation", "critical", "immediate")

# Location used by substitute updates when no keyword is given
DEFAULT_UPDATE_LOCATION: str = "Manhattan"

# Interval between simulated pushed official updates (seconds)
OFFICIAL_PUSH_INTERVAL: float = 60.0

# Source summary: recent updates kept per agency
SOURCE_SUMMARY_RECENT: int = 5

FEMA_URL: str = "https://www.fema.gov/disaster"
FEMA_BASE_URL: str = "https://www.fema.gov"
REDCROSS_URL: str = (
    "https://www.redcross.org/get-help/disaster-relief-and-recovery-services.html"
)
NWS_ALERTS_FEED_URL: str = "https://api.weather.gov/alerts/active.atom"

# ── Notifications ──────────────────────────────────────────────────────────────
# Background workers delivering published events to the sink
NOTIFIER_MAX_WORKERS: int = 2

# ── Logging ────────────────────────────────────────────────────────────────────
DEFAULT_LOG_LEVEL: str = "INFO"
