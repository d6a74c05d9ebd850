"""Shared HTTP plumbing for CrisisFusion provider adapters.

Every adapter owns a requests Session with retries disabled (the resolver
layer decides what happens after a failure) and converts transport errors,
non-200 responses, and non-JSON bodies into ProviderError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests import Session
from requests.adapters import HTTPAdapter

from config.defaults import HTTP_USER_AGENT
from crisisfusion.errors import ProviderError

logger = logging.getLogger(__name__)


def build_session(user_agent: str = HTTP_USER_AGENT) -> Session:
    """Create a requests Session with retries disabled and a fixed User-Agent."""
    session = Session()
    adapter = HTTPAdapter(max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = user_agent
    return session


def fetch(
    session: Session,
    provider: str,
    url: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    stream: bool = False,
) -> requests.Response:
    """GET url and return the response, raising ProviderError on any failure.

    Args:
        session: Session to issue the request on.
        provider: Provider name used in error messages.
        url: Request URL.
        timeout: Request timeout in seconds.
        params: Optional query parameters.
        headers: Optional extra headers.
        stream: Defer body download (used for size-capped image fetches).

    Returns:
        The HTTP 200 response.
    """
    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout, stream=stream)
    except requests.exceptions.Timeout as exc:
        raise ProviderError(provider, f"request timed out after {timeout}s") from exc
    except requests.exceptions.RequestException as exc:
        raise ProviderError(provider, f"request failed: {exc}") from exc

    if resp.status_code != 200:
        resp.close()
        raise ProviderError(provider, f"HTTP {resp.status_code}")
    return resp


def fetch_json(
    session: Session,
    provider: str,
    url: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """GET url and decode a JSON body, raising ProviderError on any failure."""
    resp = fetch(session, provider, url, timeout, params=params, headers=headers)
    try:
        return resp.json()
    except ValueError as exc:
        logger.debug("%s returned non-JSON body: %.200s", provider, resp.text)
        raise ProviderError(provider, "response body is not JSON") from exc
