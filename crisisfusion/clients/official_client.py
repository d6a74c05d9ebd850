"""Official-update source adapters for CrisisFusion.

Two adapter shapes:
    HtmlUpdateSource: scrapes an agency web page with BeautifulSoup CSS
        selectors (FEMA, Red Cross).
    FeedUpdateSource: parses an Atom/RSS alert feed with feedparser
        (National Weather Service).

Each adapter filters its own items by keyword containment in
title + description and tags ids with a per-source prefix. Fetch failures
raise ProviderError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urljoin

import feedparser
from bs4 import BeautifulSoup
from requests import Session

from config.defaults import (
    FEMA_BASE_URL,
    FEMA_URL,
    NWS_ALERTS_FEED_URL,
    OFFICIAL_REQUEST_TIMEOUT,
    REDCROSS_URL,
)
from crisisfusion.clients.http import build_session, fetch
from crisisfusion.errors import ProviderError
from crisisfusion.models.feeds import OfficialUpdate
from crisisfusion.utils.date_utils import normalize_date_str, utc_now_iso
from crisisfusion.utils.text import matches_keywords, normalize_text

logger = logging.getLogger(__name__)


@dataclass
class ScrapeSelectors:
    """CSS selectors locating one update and its fields on a page."""

    container: str
    title: str
    date: str
    description: str
    link: Optional[str] = None
    severity: Optional[str] = None


@dataclass
class SourceProfile:
    """Static description of one official source."""

    key: str
    label: str
    url: str
    id_prefix: str
    selectors: Optional[ScrapeSelectors] = None
    link_base: Optional[str] = None


FEMA_PROFILE = SourceProfile(
    key="fema",
    label="FEMA",
    url=FEMA_URL,
    id_prefix="fema",
    selectors=ScrapeSelectors(
        container=".disaster-list-item",
        title="h3",
        date=".disaster-date",
        description=".disaster-description",
        link="a",
    ),
    link_base=FEMA_BASE_URL,
)

REDCROSS_PROFILE = SourceProfile(
    key="redcross",
    label="Red Cross",
    url=REDCROSS_URL,
    id_prefix="redcross",
    selectors=ScrapeSelectors(
        container=".disaster-update",
        title=".update-title",
        date=".update-date",
        description=".update-content",
        link=".update-link",
    ),
)

NWS_PROFILE = SourceProfile(
    key="weather",
    label="National Weather Service",
    url=NWS_ALERTS_FEED_URL,
    id_prefix="weather",
)


def _select_text(element: Any, selector: Optional[str]) -> str:
    if not selector:
        return ""
    found = element.select_one(selector)
    if found is None:
        return ""
    return normalize_text(found.get_text(" ", strip=True))


class HtmlUpdateSource:
    """Scrape an agency page into OfficialUpdate items.

    Args:
        profile: Source profile carrying the URL, label, id prefix, and selectors.
        request_timeout: HTTP timeout in seconds.
        session: Optional pre-built requests Session.
    """

    def __init__(
        self,
        profile: SourceProfile,
        request_timeout: float = OFFICIAL_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        if profile.selectors is None:
            raise ValueError(f"HtmlUpdateSource profile {profile.key!r} has no selectors")
        self.profile = profile
        self.name = profile.key
        self.request_timeout = request_timeout
        self._session = session or build_session()

    def parse(self, html: str, keywords: Sequence[str] = ()) -> List[OfficialUpdate]:
        """Extract updates from page HTML, keeping those matching any keyword."""
        selectors = self.profile.selectors
        soup = BeautifulSoup(html, "html.parser")
        scraped_at = utc_now_iso()
        updates: List[OfficialUpdate] = []

        for index, element in enumerate(soup.select(selectors.container)):
            title = _select_text(element, selectors.title)
            description = _select_text(element, selectors.description)
            if not matches_keywords(f"{title} {description}", keywords):
                continue

            url = None
            if selectors.link:
                link = element.select_one(selectors.link)
                href = link.get("href") if link is not None else None
                if href:
                    url = urljoin(self.profile.link_base, href) if self.profile.link_base else href

            updates.append(
                OfficialUpdate(
                    id=f"{self.profile.id_prefix}_{index}",
                    source=self.profile.label,
                    title=title,
                    date=normalize_date_str(_select_text(element, selectors.date)),
                    description=description,
                    url=url,
                    severity=_select_text(element, selectors.severity) or None,
                    scraped_at=scraped_at,
                )
            )
        return updates

    def search(self, keywords: Sequence[str] = ()) -> List[OfficialUpdate]:
        resp = fetch(self._session, self.name, self.profile.url, self.request_timeout)
        updates = self.parse(resp.text, keywords)
        logger.debug("%s: %d updates scraped", self.profile.label, len(updates))
        return updates


class FeedUpdateSource:
    """Parse an Atom/RSS alert feed into OfficialUpdate items.

    The feed body is downloaded with requests (so the timeout applies) and
    handed to feedparser. CAP ``severity`` elements become
    OfficialUpdate.severity.
    """

    def __init__(
        self,
        profile: SourceProfile = NWS_PROFILE,
        request_timeout: float = OFFICIAL_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        self.profile = profile
        self.name = profile.key
        self.request_timeout = request_timeout
        self._session = session or build_session()

    @staticmethod
    def _entry_date(entry: Dict[str, Any]) -> str:
        for key in ("published", "updated", "created"):
            raw = entry.get(key)
            if raw:
                return normalize_date_str(str(raw))
        return ""

    def parse(self, body: bytes | str, keywords: Sequence[str] = ()) -> List[OfficialUpdate]:
        """Extract updates from feed content, keeping those matching any keyword."""
        feed = feedparser.parse(body)
        if feed.bozo and not feed.entries:
            raise ProviderError(self.name, f"feed parse error: {feed.bozo_exception}")

        scraped_at = utc_now_iso()
        updates: List[OfficialUpdate] = []
        for index, entry in enumerate(feed.entries):
            title = normalize_text(entry.get("title", ""))
            description = normalize_text(entry.get("summary", ""))
            if not matches_keywords(f"{title} {description}", keywords):
                continue
            updates.append(
                OfficialUpdate(
                    id=f"{self.profile.id_prefix}_{index}",
                    source=self.profile.label,
                    title=title,
                    date=self._entry_date(entry),
                    description=description,
                    url=entry.get("link") or None,
                    severity=entry.get("cap_severity") or None,
                    scraped_at=scraped_at,
                )
            )
        return updates

    def search(self, keywords: Sequence[str] = ()) -> List[OfficialUpdate]:
        resp = fetch(
            self._session,
            self.name,
            self.profile.url,
            self.request_timeout,
            headers={"Accept": "application/atom+xml"},
        )
        updates = self.parse(resp.content, keywords)
        logger.debug("%s: %d alerts parsed", self.profile.label, len(updates))
        return updates
