"""Official update aggregation for CrisisFusion.

Fans out over agency sources (FEMA, Red Cross, National Weather Service),
each of which filters its own items by the location keywords. The union is
cached per disaster and keyword set. When no source yields anything, a
deterministic substitute set parameterized by the first keyword is returned.
sources_summary() rolls the same union up per agency.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.defaults import SOURCE_SUMMARY_RECENT
from config.settings import ServiceConfig
from crisisfusion.aggregators.fanout import fan_out
from crisisfusion.clients.official_client import (
    FEMA_PROFILE,
    NWS_PROFILE,
    REDCROSS_PROFILE,
    FeedUpdateSource,
    HtmlUpdateSource,
)
from crisisfusion.io.cache import TTLCache
from crisisfusion.models.feeds import OfficialUpdate, SourceSummary
from crisisfusion.utils.date_utils import iso_minutes_ago, parse_date, utc_now_iso
from crisisfusion.utils.scheduling import RepeatingTimer, TimerGroup
from crisisfusion.utils.text import contains_any, keyword_digest

logger = logging.getLogger(__name__)

EMERGENCY_ALERTS_ID = "emergency_alerts"


def substitute_updates(keywords: Sequence[str], default_location: str) -> List[OfficialUpdate]:
    """Deterministic fallback updates naming the first keyword (or default_location)."""
    location = keywords[0] if keywords else default_location
    scraped_at = utc_now_iso()
    return [
        OfficialUpdate(
            id="fema_mock_1",
            source="FEMA",
            title=f"Federal Disaster Declaration for {location}",
            date=iso_minutes_ago(0),
            description=(
                f"President has declared a major disaster for {location} area. Federal "
                "assistance is now available for individuals and businesses affected by "
                "the flooding."
            ),
            url="https://www.fema.gov/disaster/mock-disaster",
            scraped_at=scraped_at,
        ),
        OfficialUpdate(
            id="redcross_mock_1",
            source="Red Cross",
            title=f"Emergency Shelter Operations in {location}",
            date=iso_minutes_ago(60),
            description=(
                f"Red Cross has opened emergency shelters in {location} to assist displaced "
                "residents. Medical services and food distribution available."
            ),
            url="https://www.redcross.org/shelter-updates",
            scraped_at=scraped_at,
        ),
        OfficialUpdate(
            id="weather_mock_1",
            source="National Weather Service",
            title=f"Flood Warning Extended for {location}",
            date=iso_minutes_ago(120),
            description=(
                f"Flood warning remains in effect for {location} until further notice. "
                "Water levels continue to rise in affected areas."
            ),
            severity="Warning",
            scraped_at=scraped_at,
        ),
        OfficialUpdate(
            id="fema_mock_2",
            source="FEMA",
            title="Disaster Recovery Centers Opening",
            date=iso_minutes_ago(180),
            description=(
                "FEMA Disaster Recovery Centers will open in affected areas to provide "
                "in-person assistance with disaster relief applications."
            ),
            url="https://www.fema.gov/recovery-centers",
            scraped_at=scraped_at,
        ),
        OfficialUpdate(
            id="redcross_mock_2",
            source="Red Cross",
            title="Volunteer Training Sessions",
            date=iso_minutes_ago(240),
            description=(
                "Red Cross is conducting emergency volunteer training sessions for disaster "
                "response. Contact local chapter for registration."
            ),
            url="https://www.redcross.org/volunteer",
            scraped_at=scraped_at,
        ),
    ]


def build_official_sources(config: ServiceConfig) -> List[Any]:
    """FEMA and Red Cross scrapers plus the NWS alert feed. Test mode builds none."""
    if config.test_mode:
        return []
    timeout = config.official_request_timeout
    return [
        HtmlUpdateSource(FEMA_PROFILE, timeout),
        HtmlUpdateSource(REDCROSS_PROFILE, timeout),
        FeedUpdateSource(NWS_PROFILE, timeout),
    ]


def _clean_keywords(keywords: Sequence[str]) -> List[str]:
    return [kw.strip() for kw in keywords or () if kw and kw.strip()]


class OfficialUpdateAggregator:
    """Fan-out, cache, and filter official agency updates.

    Args:
        config: Service configuration.
        cache: TTL cache for aggregated results.
        sources: Source adapters exposing ``name`` and ``search(keywords)``.
            Defaults to build_official_sources(config).
    """

    def __init__(
        self,
        config: ServiceConfig,
        cache: TTLCache,
        sources: Optional[List[Any]] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.sources = build_official_sources(config) if sources is None else list(sources)
        self._timers = TimerGroup()

    @staticmethod
    def cache_key(disaster_id: str, keywords: Sequence[str]) -> str:
        return f"official_updates_{disaster_id}_{keyword_digest(keywords)}"

    def get_updates(
        self, disaster_id: str, location_keywords: Sequence[str] = ()
    ) -> List[OfficialUpdate]:
        """Aggregated official updates for a disaster.

        Args:
            disaster_id: Disaster identifier (or a pseudo-id such as "emergency_alerts").
            location_keywords: Keywords each source filters on; empty means no filtering.

        Returns:
            Updates from every source that answered in time, or the substitute set.
        """
        keywords = _clean_keywords(location_keywords)
        key = self.cache_key(disaster_id, keywords)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Official updates for %s served from cache", disaster_id)
            return [OfficialUpdate.from_dict(item) for item in cached]

        updates = fan_out(self.sources, keywords, self.config.fanout_timeout, "official")
        source = "sources"
        if not updates:
            updates = substitute_updates(keywords, self.config.default_update_location)
            source = "substitute"

        self.cache.set(key, [u.to_dict() for u in updates], self.config.cache_ttl_seconds)
        logger.info("Official updates for %s: %d items from %s", disaster_id, len(updates), source)
        return updates

    def get_emergency_alerts(self, keywords: Sequence[str] = ()) -> List[OfficialUpdate]:
        """Aggregated updates whose title or description contains an emergency keyword."""
        updates = self.get_updates(EMERGENCY_ALERTS_ID, keywords)
        return [
            u for u in updates if contains_any(u.searchable_text, self.config.emergency_keywords)
        ]

    def get_updates_by_source(self, source: str) -> List[OfficialUpdate]:
        """Updates from one source ("fema", "redcross", "weather"), unfiltered.

        An unknown source name yields the substitute set. A failing source
        yields an empty list, which is not cached.
        """
        name = source.strip().lower()
        key = f"official_updates_source_{name}"
        cached = self.cache.get(key)
        if cached is not None:
            return [OfficialUpdate.from_dict(item) for item in cached]

        adapter = next((s for s in self.sources if s.name == name), None)
        if adapter is None:
            logger.info("No official source named %r; returning substitute updates", source)
            updates = substitute_updates((), self.config.default_update_location)
        else:
            try:
                updates = adapter.search(())
            except Exception as exc:
                logger.warning("Official source %s failed: %s", name, exc)
                return []

        self.cache.set(key, [u.to_dict() for u in updates], self.config.cache_ttl_seconds)
        return updates

    def refresh_updates(
        self, disaster_id: str, location_keywords: Sequence[str] = ()
    ) -> List[OfficialUpdate]:
        """Drop the cached aggregate and re-query every source."""
        keywords = _clean_keywords(location_keywords)
        self.cache.delete(self.cache_key(disaster_id, keywords))
        logger.info("Official updates cache cleared for %s", disaster_id)
        return self.get_updates(disaster_id, keywords)

    def sources_summary(self, disaster_id: str) -> List[SourceSummary]:
        """Per-agency totals, newest update, and the first few updates of each.

        Agencies appear in the order their first update does. Updates whose
        date does not parse never displace a dated latest update.
        """
        summaries: Dict[str, SourceSummary] = {}
        newest: Dict[str, Any] = {}
        for update in self.get_updates(disaster_id):
            summary = summaries.setdefault(update.source, SourceSummary(update.source))
            summary.total_updates += 1

            when = parse_date(update.date)
            current = newest.get(update.source)
            if summary.latest_update is None or (when is not None and (current is None or when > current)):
                summary.latest_update = update
                newest[update.source] = when

            if len(summary.recent_updates) < SOURCE_SUMMARY_RECENT:
                summary.recent_updates.append(
                    {
                        "id": update.id,
                        "title": update.title,
                        "date": update.date,
                        "severity": update.severity or "normal",
                    }
                )
        return list(summaries.values())

    def simulated_update(self) -> OfficialUpdate:
        """One synthetic update for the simulated push feed."""
        now = utc_now_iso()
        return OfficialUpdate(
            id=f"official_realtime_{int(time.time() * 1000)}",
            source="FEMA",
            title="Emergency Response Team Deployed",
            date=now,
            description="Federal emergency response teams have been deployed to the affected area.",
            severity="high",
            scraped_at=now,
        )

    def start_simulated_push(
        self,
        disaster_id: str,
        callback: Callable[[OfficialUpdate], Any],
        interval: Optional[float] = None,
    ) -> RepeatingTimer:
        """Push a synthetic update to callback every interval seconds.

        Returns:
            The running timer; call ``cancel()`` to stop it. The timer thread
            is a daemon, so an abandoned handle never blocks interpreter exit.
        """
        timer = RepeatingTimer(
            interval or self.config.official_push_interval,
            lambda: callback(self.simulated_update()),
            name=f"official-push-{disaster_id}",
        )
        self._timers.add(timer.start())
        logger.info("Simulated official push started for %s every %ss", disaster_id, timer.interval)
        return timer

    def close(self) -> None:
        """Cancel every simulated push still running."""
        self._timers.cancel_all()
