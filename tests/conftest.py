"""Shared pytest fixtures for CrisisFusion tests.

Conventions:
- Provider payloads live in tests/fixtures/ as static HTML, Atom, and JSON files
- mock_llm_client returns canned answers without real API calls
- http_mock patches requests.Session.get; no real external HTTP calls are made
- fake_clock drives cache expiry deterministically
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import MagicMock, patch

import pytest

_FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ── Raw fixture data loaders ─────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def fema_html() -> str:
    """FEMA declared-disasters page with three list items (two with links)."""
    return (_FIXTURES_DIR / "fema_disasters.html").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def redcross_html() -> str:
    """Red Cross updates page with two updates."""
    return (_FIXTURES_DIR / "redcross_updates.html").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def nws_atom() -> bytes:
    """NWS active-alerts Atom feed with a Manhattan flood warning and a Chicago wind advisory."""
    return (_FIXTURES_DIR / "nws_alerts.atom").read_bytes()


@pytest.fixture(scope="session")
def twitter_search_raw() -> Dict[str, Any]:
    """Twitter v2 recent-search response with two tweets."""
    with open(_FIXTURES_DIR / "twitter_search.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture(scope="session")
def bluesky_search_raw() -> Dict[str, Any]:
    """Bluesky searchPosts response with one post."""
    with open(_FIXTURES_DIR / "bluesky_search.json", encoding="utf-8") as f:
        return json.load(f)


# ── Config, store, clock, cache ──────────────────────────────────────────────────

@pytest.fixture
def service_config():
    """ServiceConfig in test mode: no network providers, short timeouts."""
    from config.settings import ServiceConfig

    return ServiceConfig(
        test_mode=True,
        log_level="WARNING",
        fanout_timeout=2.0,
        provider_chain_timeout=2.0,
    )


@pytest.fixture
def record_store():
    """Empty in-memory record store."""
    from crisisfusion.io.record_store import InMemoryRecordStore

    return InMemoryRecordStore()


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(record_store, fake_clock):
    """TTLCache over the in-memory store, driven by fake_clock (TTL 3600 s)."""
    from crisisfusion.io.cache import TTLCache

    return TTLCache(record_store, default_ttl=3600, clock=fake_clock)


# ── Mock LLM client ──────────────────────────────────────────────────────────────

@pytest.fixture
def mock_llm_client():
    """Mock LLMClient returning canned answers without real API calls.

    call() answers a location; call_with_image() answers an authentic verdict.
    Tests override return_value / side_effect as needed.
    """
    from crisisfusion.clients.llm_client import LLMClient

    client = MagicMock(spec=LLMClient)
    client.backend = "mock"
    client.call.return_value = "Lower East Side, New York"
    client.call_with_image.return_value = json.dumps(
        {
            "authenticity_score": 85,
            "manipulation_detected": False,
            "context_match": True,
            "confidence_level": "high",
            "reasoning": "Consistent lighting and water reflections.",
        }
    )
    return client


@pytest.fixture
def mock_image_fetcher():
    """Mock ImageFetcher returning a tiny JPEG payload."""
    from crisisfusion.clients.image_fetcher import ImageFetcher

    fetcher = MagicMock(spec=ImageFetcher)
    fetcher.fetch.return_value = (b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg")
    return fetcher


# ── Response mock helper for provider HTTP tests ─────────────────────────────────

def make_response(
    status_code: int = 200,
    json_data: Any = None,
    text: str = "",
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
) -> MagicMock:
    """Build a MagicMock standing in for a requests.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text or (json.dumps(json_data) if json_data is not None else "")
    resp.content = content if content is not None else resp.text.encode("utf-8")
    resp.headers = headers or {}
    if json_data is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = json_data
    resp.iter_content.return_value = iter([resp.content] if resp.content else [])
    return resp


@pytest.fixture
def response_factory():
    """The make_response builder, for tests that need several distinct responses."""
    return make_response


@pytest.fixture
def http_mock():
    """Context manager that patches requests.Session.get with a configurable response.

    Usage:
        def test_something(http_mock):
            with http_mock(json_data={"status": "OK"}) as mock_get:
                ...
            with http_mock(responses=[resp1, resp2]) as mock_get:
                ...
    """
    import requests

    class _HttpMockContext:
        def __call__(self, responses=None, side_effect=None, **kwargs):
            if side_effect is not None:
                return patch.object(requests.Session, "get", side_effect=side_effect)
            if responses is not None:
                return patch.object(requests.Session, "get", side_effect=list(responses))
            return patch.object(requests.Session, "get", return_value=make_response(**kwargs))

    return _HttpMockContext()
