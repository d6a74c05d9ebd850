"""Unit tests for crisisfusion.resolvers.text_analysis.

Covers:
- parse_location_answer: label/quote stripping, sentinel normalization, junk
- normalize_analysis / normalize_verification: coercion and clamping
- TextAnalysisResolver.extract_location: success, sentinel, caching, failures
- analyze_disaster_description: parsed JSON, unparseable output, provider failure
- verify_image_authenticity: success, fail-closed paths, best-effort parse
"""

from __future__ import annotations

import json

import pytest

from config.defaults import NO_LOCATION_SENTINEL
from crisisfusion.errors import ParseError, ProviderError, ValidationError
from crisisfusion.resolvers.text_analysis import (
    VERIFICATION_FAILED_REASON,
    TextAnalysisResolver,
    normalize_analysis,
    normalize_verification,
    parse_location_answer,
)


@pytest.fixture
def resolver(service_config, cache, mock_llm_client, mock_image_fetcher):
    return TextAnalysisResolver(service_config, cache, mock_llm_client, mock_image_fetcher)


# ── Parsing helpers ───────────────────────────────────────────────────────────────

class TestParseLocationAnswer:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Manhattan, NYC", "Manhattan, NYC"),
            ('"Lower East Side, New York"', "Lower East Side, New York"),
            ("Location: Brooklyn.", "Brooklyn"),
            ("\n\n  Queens, NY  \nsecond line", "Queens, NY"),
            ("**Staten Island**", "Staten Island"),
        ],
    )
    def test_cleans_answer(self, raw, expected):
        """Labels, quotes, emphasis, and trailing periods must be stripped."""
        assert parse_location_answer(raw) == expected

    @pytest.mark.parametrize("raw", ["No location found", "no location found.", '"NO LOCATION FOUND"'])
    def test_sentinel_normalized(self, raw):
        """Any spelling of the sentinel must map to the exact sentinel."""
        assert parse_location_answer(raw) == NO_LOCATION_SENTINEL

    def test_empty_answer_raises(self):
        """An answer with nothing usable must raise ParseError."""
        with pytest.raises(ParseError):
            parse_location_answer('  ""  ')

    def test_overlong_answer_raises(self):
        """A paragraph-length answer is not a place name."""
        with pytest.raises(ParseError):
            parse_location_answer("The text describes " + "a very long place " * 20)


class TestNormalizeAnalysis:
    def test_full_answer(self):
        """A well-formed answer must map field by field."""
        result = normalize_analysis(
            {
                "severity_level": "HIGH",
                "disaster_type": "Flood",
                "urgency_indicator": "true",
                "affected_areas": ["Queens", " ", None, "Brooklyn"],
                "key_needs": "water",
            },
            "2024-01-15T00:00:00+00:00",
        )
        assert result.severity_level == "high"
        assert result.disaster_type == "flood"
        assert result.urgency_indicator is True
        assert result.affected_areas == ["Queens", "Brooklyn"]
        assert result.key_needs == ["water"]
        assert result.source == "ai"

    def test_unknown_severity_defaults_to_medium(self):
        """Severity outside the allowed set must become 'medium'."""
        result = normalize_analysis({"severity_level": "catastrophic"}, "t")
        assert result.severity_level == "medium"
        assert result.disaster_type == "unknown"
        assert result.urgency_indicator is False


class TestNormalizeVerification:
    @pytest.mark.parametrize("score,expected", [(150, 100), (-5, 0), ("72.6", 73), ("n/a", 50)])
    def test_score_clamped(self, score, expected):
        """authenticity_score must be clamped to 0-100 with 50 as the fallback."""
        result = normalize_verification({"authenticity_score": score}, "u", "t")
        assert result.authenticity_score == expected

    def test_defaults_for_missing_fields(self):
        """Missing fields must take the documented defaults."""
        result = normalize_verification({}, "https://img.test/a.jpg", "t")
        assert result.manipulation_detected is False
        assert result.context_match is True
        assert result.confidence_level == "medium"
        assert result.image_url == "https://img.test/a.jpg"


# ── extract_location ──────────────────────────────────────────────────────────────

class TestExtractLocation:
    def test_extracts_location(self, resolver, mock_llm_client):
        """The model's answer must be returned with source 'ai'."""
        result = resolver.extract_location("Flooding reported near Lower East Side")
        assert result.location == "Lower East Side, New York"
        assert result.source == "ai"
        assert result.found

    def test_second_call_served_from_cache(self, resolver, mock_llm_client):
        """The same text must reach the model only once."""
        text = "Flooding reported near Lower East Side"
        first = resolver.extract_location(text)
        second = resolver.extract_location(text)

        assert mock_llm_client.call.call_count == 1
        assert second == first

    def test_sentinel_answer_cached(self, resolver, mock_llm_client):
        """A 'No location found' answer is a real answer and must be cached."""
        mock_llm_client.call.return_value = "No location found"

        first = resolver.extract_location("Stay safe everyone")
        resolver.extract_location("Stay safe everyone")

        assert first.location == NO_LOCATION_SENTINEL
        assert first.source == "ai"
        assert not first.found
        assert mock_llm_client.call.call_count == 1

    def test_provider_failure_not_cached(self, resolver, mock_llm_client):
        """A None answer must yield the sentinel with source 'error' and not be cached."""
        mock_llm_client.call.return_value = None

        result = resolver.extract_location("Fire near the harbour")
        resolver.extract_location("Fire near the harbour")

        assert result.location == NO_LOCATION_SENTINEL
        assert result.source == "error"
        assert mock_llm_client.call.call_count == 2

    def test_unparseable_answer_is_error(self, resolver, mock_llm_client):
        """An overlong answer must degrade to the sentinel with source 'error'."""
        mock_llm_client.call.return_value = "x" * 500
        assert resolver.extract_location("some text").source == "error"

    def test_no_llm_client_is_error(self, service_config, cache):
        """Without an LLM client the result must be the sentinel with source 'error'."""
        result = TextAnalysisResolver(service_config, cache).extract_location("Queens flood")
        assert result.source == "error"

    def test_blank_text_raises(self, resolver):
        """Blank text must raise ValidationError."""
        with pytest.raises(ValidationError):
            resolver.extract_location("   ")


# ── analyze_disaster_description ──────────────────────────────────────────────────

class TestAnalyzeDisasterDescription:
    def test_parsed_answer(self, resolver, mock_llm_client):
        """A JSON answer (even fenced) must be normalized with source 'ai'."""
        mock_llm_client.call.return_value = "```json\n" + json.dumps(
            {
                "severity_level": "critical",
                "disaster_type": "flood",
                "urgency_indicator": True,
                "affected_areas": ["Lower Manhattan"],
                "key_needs": ["boats", "shelter"],
            }
        ) + "\n```"

        result = resolver.analyze_disaster_description("Severe flooding in Lower Manhattan")

        assert result.severity_level == "critical"
        assert result.key_needs == ["boats", "shelter"]
        assert result.source == "ai"
        assert result.analyzed_at

    def test_cached_by_text(self, resolver, mock_llm_client):
        """A repeated description must reach the model only once."""
        mock_llm_client.call.return_value = '{"severity_level": "low"}'
        resolver.analyze_disaster_description("Minor flooding")
        again = resolver.analyze_disaster_description("Minor flooding")

        assert again.severity_level == "low"
        assert mock_llm_client.call.call_count == 1

    def test_unparseable_answer_uses_defaults_and_is_cached(self, resolver, mock_llm_client):
        """Prose instead of JSON must yield defaults, keep the raw text, and be cached."""
        mock_llm_client.call.return_value = "It is a bad flood."

        result = resolver.analyze_disaster_description("Flood")
        resolver.analyze_disaster_description("Flood")

        assert result.severity_level == "medium"
        assert result.disaster_type == "unknown"
        assert result.urgency_indicator is False
        assert result.affected_areas == [] and result.key_needs == []
        assert result.source == "error"
        assert result.raw_response == "It is a bad flood."
        assert mock_llm_client.call.call_count == 1

    def test_provider_failure_defaults_not_cached(self, resolver, mock_llm_client):
        """A provider failure must yield defaults and must not be cached."""
        mock_llm_client.call.return_value = None

        resolver.analyze_disaster_description("Flood")
        result = resolver.analyze_disaster_description("Flood")

        assert result.source == "error"
        assert result.raw_response is None
        assert mock_llm_client.call.call_count == 2


# ── verify_image_authenticity ─────────────────────────────────────────────────────

class TestVerifyImageAuthenticity:
    def test_verified_image(self, resolver, mock_llm_client, mock_image_fetcher):
        """A clean verdict must come back with status 'verified'."""
        result = resolver.verify_image_authenticity("https://img.test/flood.jpg", "Queens flood")

        assert result.authenticity_score == 85
        assert result.verification_status == "verified"
        assert result.source == "ai"
        mock_image_fetcher.fetch.assert_called_once_with("https://img.test/flood.jpg")
        image_bytes = mock_llm_client.call_with_image.call_args.args[2]
        assert image_bytes == b"\xff\xd8\xff\xe0fake-jpeg"

    def test_context_included_in_prompt(self, resolver, mock_llm_client):
        """The claimed context must appear in the vision prompt."""
        resolver.verify_image_authenticity("https://img.test/a.jpg", "Brooklyn bridge flooding")
        prompt = mock_llm_client.call_with_image.call_args.args[1]
        assert "Brooklyn bridge flooding" in prompt

    def test_manipulated_image_is_suspicious(self, resolver, mock_llm_client):
        """manipulation_detected must map to status 'suspicious'."""
        mock_llm_client.call_with_image.return_value = (
            '{"authenticity_score": 12, "manipulation_detected": true, '
            '"context_match": false, "confidence_level": "high", "reasoning": "cloned water"}'
        )
        result = resolver.verify_image_authenticity("https://img.test/fake.jpg")
        assert result.verification_status == "suspicious"

    def test_cached_by_url(self, resolver, mock_llm_client):
        """A repeated URL must reach the model only once."""
        resolver.verify_image_authenticity("https://img.test/a.jpg", "ctx one")
        resolver.verify_image_authenticity("https://img.test/a.jpg", "ctx two")
        assert mock_llm_client.call_with_image.call_count == 1

    def test_fetch_failure_fails_closed(self, resolver, mock_llm_client, mock_image_fetcher):
        """An image download failure must fail closed without calling the model."""
        mock_image_fetcher.fetch.side_effect = ProviderError("image_fetch", "HTTP 404")

        result = resolver.verify_image_authenticity("https://img.test/missing.jpg")

        assert result.authenticity_score == 0
        assert result.manipulation_detected is True
        assert result.context_match is False
        assert result.confidence_level == "low"
        assert result.reasoning == VERIFICATION_FAILED_REASON
        assert result.verification_status == "suspicious"
        mock_llm_client.call_with_image.assert_not_called()

    def test_provider_failure_fails_closed_and_not_cached(self, resolver, mock_llm_client):
        """A None vision answer must fail closed and leave nothing cached."""
        mock_llm_client.call_with_image.return_value = None

        resolver.verify_image_authenticity("https://img.test/a.jpg")
        result = resolver.verify_image_authenticity("https://img.test/a.jpg")

        assert result.source == "error"
        assert result.reasoning == VERIFICATION_FAILED_REASON
        assert mock_llm_client.call_with_image.call_count == 2

    def test_unparseable_answer_best_effort(self, resolver, mock_llm_client):
        """Prose instead of JSON must give a best-effort 50/verified result with the prose as reasoning."""
        mock_llm_client.call_with_image.return_value = "Looks like a genuine photo of flooding."

        result = resolver.verify_image_authenticity("https://img.test/a.jpg")

        assert result.authenticity_score == 50
        assert result.manipulation_detected is False
        assert result.confidence_level == "medium"
        assert result.reasoning == "Looks like a genuine photo of flooding."
        assert result.raw_response == "Looks like a genuine photo of flooding."

    def test_no_vision_provider_fails_closed(self, service_config, cache):
        """Without an LLM client or image fetcher verification must fail closed."""
        result = TextAnalysisResolver(service_config, cache).verify_image_authenticity(
            "https://img.test/a.jpg"
        )
        assert result.manipulation_detected is True
        assert result.reasoning == VERIFICATION_FAILED_REASON

    def test_blank_url_raises(self, resolver):
        """A blank image URL must raise ValidationError."""
        with pytest.raises(ValidationError):
            resolver.verify_image_authenticity("")
