"""AI text and image analysis resolver for CrisisFusion.

Three operations, each cached by a digest of its input so a repeated call
never reaches the model twice:

    extract_location             free text → location name (or the sentinel)
    analyze_disaster_description free text → severity/type/urgency/areas/needs
    verify_image_authenticity    image URL → authenticity assessment

Provider failures produce safe defaults tagged source="error" and are not
cached. Unparseable model output degrades to defaults (analysis) or a
best-effort result (verification) that is cached like a normal answer.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional

from config.defaults import (
    CONFIDENCE_LEVELS,
    LLM_ANALYSIS_MAX_TOKENS,
    LLM_LOCATION_MAX_TOKENS,
    LLM_VERIFICATION_MAX_TOKENS,
    LOCATION_MAX_CHARS,
    NO_LOCATION_SENTINEL,
    SEVERITY_LEVELS,
)
from config.settings import ServiceConfig
from crisisfusion.clients.image_fetcher import ImageFetcher
from crisisfusion.clients.llm_client import LLMClient, safe_parse_llm_json
from crisisfusion.errors import ParseError, ValidationError
from crisisfusion.io.cache import TTLCache
from crisisfusion.models.analysis import (
    AnalysisResult,
    AnalysisSource,
    LocationExtraction,
    VerificationResult,
)
from crisisfusion.utils.date_utils import utc_now_iso
from crisisfusion.utils.text import text_digest

logger = logging.getLogger(__name__)

VERIFICATION_FAILED_REASON = "Verification failed due to API error"

# ── Prompts ───────────────────────────────────────────────────────────────────

_LOCATION_SYSTEM = (
    "You extract place names from disaster reports. Answer with the location "
    "name only, no explanation."
)

_LOCATION_PROMPT = (
    "Extract the specific location name from the following text. Return only the "
    'location name in a clear format (e.g., "Manhattan, NYC" or "Lower East Side, '
    f'New York"). If no location is found, return "{NO_LOCATION_SENTINEL}".\n\n'
    'Text: "{text}"\n\nLocation:'
)

_ANALYSIS_SYSTEM = (
    "You are a disaster-response analyst. Return only valid JSON. Do not include "
    "any explanation or markdown fences."
)

_ANALYSIS_PROMPT = (
    "Analyze this disaster description and extract key information:\n\n"
    'Description: "{text}"\n\n'
    "Provide a JSON object with:\n"
    "- severity_level (low/medium/high/critical)\n"
    "- disaster_type (flood, earthquake, fire, hurricane, etc.)\n"
    "- urgency_indicator (true/false)\n"
    "- affected_areas (list of mentioned areas)\n"
    "- key_needs (list of mentioned needs)"
)

_VERIFICATION_SYSTEM = (
    "You are an image forensics analyst verifying disaster imagery. Return only "
    "valid JSON. Do not include any explanation or markdown fences."
)

_VERIFICATION_PROMPT = (
    "Analyze this image for authenticity and disaster context. Consider the following:\n\n"
    "1. Does the image appear to be authentic (not obviously manipulated or AI-generated)?\n"
    '2. Does the image content match the disaster context: "{context}"?\n'
    "3. Are there any signs of digital manipulation or inconsistencies?\n"
    "4. Does the image show realistic disaster conditions?\n\n"
    "Provide a JSON object with:\n"
    "- authenticity_score (0-100)\n"
    "- manipulation_detected (true/false)\n"
    "- context_match (true/false)\n"
    "- confidence_level (low/medium/high)\n"
    "- reasoning (brief explanation)"
)


# ── Normalization helpers ─────────────────────────────────────────────────────

def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _coerce_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


def _clamp_score(value: Any, default: int) -> int:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(score):
        return default
    return int(round(min(100.0, max(0.0, score))))


def parse_location_answer(raw: str) -> str:
    """Reduce a model answer to a bare location name.

    Takes the first non-empty line, drops a leading "Location:" label,
    surrounding quotes, and a trailing period. The sentinel is normalized to
    its exact spelling.

    Raises:
        ParseError: If nothing usable remains or the answer is too long to be
            a place name.
    """
    line = next((ln.strip() for ln in raw.splitlines() if ln.strip()), "")
    if line.lower().startswith("location:"):
        line = line[len("location:"):].strip()
    line = line.strip("\"'`*").strip().rstrip(".").strip()

    if not line:
        raise ParseError("empty location answer", raw=raw)
    if len(line) > LOCATION_MAX_CHARS:
        raise ParseError("location answer too long", raw=raw)
    if line.lower() == NO_LOCATION_SENTINEL.lower():
        return NO_LOCATION_SENTINEL
    return line


def normalize_analysis(data: dict, analyzed_at: str) -> AnalysisResult:
    """Map a parsed model answer onto AnalysisResult with safe fallbacks."""
    severity = str(data.get("severity_level", "")).strip().lower()
    disaster_type = str(data.get("disaster_type") or "").strip().lower()
    return AnalysisResult(
        severity_level=severity if severity in SEVERITY_LEVELS else "medium",
        disaster_type=disaster_type or "unknown",
        urgency_indicator=_coerce_bool(data.get("urgency_indicator"), False),
        affected_areas=_coerce_list(data.get("affected_areas")),
        key_needs=_coerce_list(data.get("key_needs")),
        source=AnalysisSource.AI,
        analyzed_at=analyzed_at,
    )


def normalize_verification(data: dict, image_url: str, verified_at: str) -> VerificationResult:
    """Map a parsed model answer onto VerificationResult; scores are clamped to [0, 100]."""
    confidence = str(data.get("confidence_level", "")).strip().lower()
    return VerificationResult(
        authenticity_score=_clamp_score(data.get("authenticity_score"), 50),
        manipulation_detected=_coerce_bool(data.get("manipulation_detected"), False),
        context_match=_coerce_bool(data.get("context_match"), True),
        confidence_level=confidence if confidence in CONFIDENCE_LEVELS else "medium",
        reasoning=str(data.get("reasoning") or ""),
        source=AnalysisSource.AI,
        image_url=image_url,
        verified_at=verified_at,
    )


def _require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value


class TextAnalysisResolver:
    """AI-backed location extraction, description analysis, and image verification.

    Args:
        config: Service configuration.
        cache: TTL cache for results.
        llm_client: LLM client; None means every call takes the provider-failure path.
        image_fetcher: Image downloader for verification.
    """

    def __init__(
        self,
        config: ServiceConfig,
        cache: TTLCache,
        llm_client: Optional[LLMClient] = None,
        image_fetcher: Optional[ImageFetcher] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.llm_client = llm_client
        self.image_fetcher = image_fetcher

    # ── Location extraction ────────────────────────────────────────────────────

    def extract_location(self, text: str) -> LocationExtraction:
        """Extract a location name from free text.

        Returns:
            LocationExtraction; location is "No location found" when the text
            names no place (source "ai", cached) or the provider failed
            (source "error", not cached).

        Raises:
            ValidationError: If text is blank.
        """
        _require_text(text, "text")
        key = f"location_{text_digest(text)}"
        cached = self.cache.get(key)
        if cached is not None:
            return LocationExtraction.from_dict(cached)

        if self.llm_client is None:
            logger.warning("Location extraction skipped: no LLM client configured")
            return LocationExtraction.not_found()

        raw = self.llm_client.call(
            _LOCATION_SYSTEM,
            _LOCATION_PROMPT.format(text=text),
            max_tokens=LLM_LOCATION_MAX_TOKENS,
            temperature=self.config.llm_temperature,
        )
        if raw is None:
            logger.warning("Location extraction failed: LLM returned no answer")
            return LocationExtraction.not_found()

        try:
            location = parse_location_answer(raw)
        except ParseError as exc:
            logger.warning("Location extraction unparseable (%s): %.200s", exc, raw)
            return LocationExtraction.not_found()

        result = LocationExtraction(location=location, source=AnalysisSource.AI)
        self.cache.set(key, result.to_dict(), self.config.cache_ttl_seconds)
        logger.info("Location extracted: %s", location)
        return result

    # ── Description analysis ───────────────────────────────────────────────────

    def analyze_disaster_description(self, text: str) -> AnalysisResult:
        """Analyze a disaster description into structured fields.

        Raises:
            ValidationError: If text is blank.
        """
        _require_text(text, "text")
        key = f"analysis_{text_digest(text)}"
        cached = self.cache.get(key)
        if cached is not None:
            return AnalysisResult.from_dict(cached)

        if self.llm_client is None:
            logger.warning("Description analysis skipped: no LLM client configured")
            return AnalysisResult.safe_default(utc_now_iso())

        raw = self.llm_client.call(
            _ANALYSIS_SYSTEM,
            _ANALYSIS_PROMPT.format(text=text),
            max_tokens=LLM_ANALYSIS_MAX_TOKENS,
            temperature=self.config.llm_temperature,
        )
        if raw is None:
            logger.warning("Description analysis failed: LLM returned no answer")
            return AnalysisResult.safe_default(utc_now_iso())

        parsed = safe_parse_llm_json(raw)
        if isinstance(parsed, dict):
            result = normalize_analysis(parsed, utc_now_iso())
        else:
            logger.warning("Description analysis unparseable: %.200s", raw)
            result = AnalysisResult.safe_default(utc_now_iso(), raw_response=raw)

        self.cache.set(key, result.to_dict(), self.config.cache_ttl_seconds)
        logger.info(
            "Description analyzed: severity=%s type=%s source=%s",
            result.severity_level,
            result.disaster_type,
            result.source,
        )
        return result

    # ── Image verification ─────────────────────────────────────────────────────

    def verify_image_authenticity(self, image_url: str, context: str = "") -> VerificationResult:
        """Assess whether an image is authentic and matches its disaster context.

        The cache key covers the image URL only; the first context wins.
        Fetch or provider failures fail closed (score 0, manipulation
        detected) and are not cached.

        Raises:
            ValidationError: If image_url is blank.
        """
        _require_text(image_url, "image_url")
        key = f"verification_{text_digest(image_url)}"
        cached = self.cache.get(key)
        if cached is not None:
            return VerificationResult.from_dict(cached)

        if self.llm_client is None or self.image_fetcher is None:
            logger.warning("Image verification skipped: no vision provider configured")
            return VerificationResult.fail_closed(image_url, utc_now_iso(), VERIFICATION_FAILED_REASON)

        try:
            image_bytes, media_type = self.image_fetcher.fetch(image_url)
        except Exception as exc:
            logger.warning("Image fetch failed for %s: %s", image_url, exc)
            return VerificationResult.fail_closed(image_url, utc_now_iso(), VERIFICATION_FAILED_REASON)

        raw = self.llm_client.call_with_image(
            _VERIFICATION_SYSTEM,
            _VERIFICATION_PROMPT.format(context=context),
            image_bytes,
            media_type=media_type,
            max_tokens=LLM_VERIFICATION_MAX_TOKENS,
            temperature=self.config.llm_temperature,
        )
        if raw is None:
            logger.warning("Image verification failed: vision model returned no answer")
            return VerificationResult.fail_closed(image_url, utc_now_iso(), VERIFICATION_FAILED_REASON)

        parsed = safe_parse_llm_json(raw)
        if isinstance(parsed, dict):
            result = normalize_verification(parsed, image_url, utc_now_iso())
        else:
            logger.warning("Image verification unparseable; using best-effort result")
            result = VerificationResult(
                authenticity_score=50,
                manipulation_detected=False,
                context_match=True,
                confidence_level="medium",
                reasoning=raw.strip(),
                source=AnalysisSource.AI,
                image_url=image_url,
                verified_at=utc_now_iso(),
                raw_response=raw,
            )

        self.cache.set(key, result.to_dict(), self.config.cache_ttl_seconds)
        logger.info(
            "Image verified: %s score=%d status=%s",
            image_url,
            result.authenticity_score,
            result.verification_status,
        )
        return result
