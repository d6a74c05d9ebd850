"""Social signal aggregation for CrisisFusion.

Fans out over the configured social feeds, deduplicates the union by
(platform, id), assigns every signal a priority, and caches the result per
disaster and keyword set. When no feed answers, a fixed set of substitute
signals keeps downstream consumers working. Per-platform and per-keyword
rollups are computed over the same aggregated signals.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from config.defaults import (
    KEYWORD_SAMPLE_SIZE,
    KEYWORD_SAMPLE_SNIPPET,
    PLATFORM_SUMMARY_RECENT,
    PLATFORM_SUMMARY_SNIPPET,
)
from config.settings import PriorityRules, ServiceConfig
from crisisfusion.aggregators.fanout import fan_out
from crisisfusion.clients.social_client import BlueskyFeedProvider, TwitterFeedProvider
from crisisfusion.io.cache import TTLCache
from crisisfusion.models.feeds import (
    KeywordMentions,
    PlatformSummary,
    Priority,
    SocialSignal,
    snippet,
)
from crisisfusion.utils.date_utils import iso_minutes_ago, utc_now_iso
from crisisfusion.utils.scheduling import RepeatingTimer, TimerGroup
from crisisfusion.utils.text import contains_any, keyword_digest, matches_keywords

logger = logging.getLogger(__name__)

LOCATION_SEARCH_ID = "location_search"


def calculate_priority(
    content: str,
    metrics: Optional[Mapping[str, Any]] = None,
    rules: Optional[PriorityRules] = None,
) -> str:
    """Classify a post as urgent / high / medium / low.

    Keyword matches dominate engagement: an urgent keyword gives "urgent",
    else a needs keyword gives "high". Otherwise the summed engagement
    counters decide: above the high threshold "high", above the medium
    threshold "medium", else "low".

    Args:
        content: Post text.
        metrics: Engagement counters; non-numeric values count as zero.
        rules: Keyword sets and thresholds (defaults from config.defaults).

    Returns:
        One of the Priority constants.
    """
    rules = rules or PriorityRules()
    content = content or ""
    if contains_any(content, rules.urgent_keywords):
        return Priority.URGENT
    if contains_any(content, rules.needs_keywords):
        return Priority.HIGH

    engagement = 0
    for key in rules.engagement_keys:
        value = (metrics or {}).get(key, 0)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            engagement += value
    if engagement > rules.high_engagement:
        return Priority.HIGH
    if engagement > rules.medium_engagement:
        return Priority.MEDIUM
    return Priority.LOW


def substitute_signals(keywords: Sequence[str]) -> List[SocialSignal]:
    """Deterministic fallback signals, templated on the first keyword.

    With keywords given, only signals whose content contains one of them are
    returned.
    """
    place = keywords[0] if keywords else None
    templates = [
        ("mock_1", "twitter", "citizen1", 0,
         "#floodrelief Need immediate assistance in {}. Water levels rising rapidly.",
         "Manhattan", {"retweet_count": 45, "like_count": 123},
         "https://twitter.com/citizen1/status/mock_1"),
        ("mock_2", "twitter", "relief_worker", 5,
         "Emergency shelter needed in {}. Families with children. #disasterresponse",
         "Lower East Side", {"retweet_count": 89, "like_count": 234},
         "https://twitter.com/relief_worker/status/mock_2"),
        ("mock_3", "bluesky", "medical_team", 10,
         "Medical supplies running low at {} shelter. Need volunteers and donations.",
         "downtown", {"like_count": 67},
         "https://bsky.app/profile/medical_team/post/mock_3"),
        ("mock_4", "twitter", "utility_company", 15,
         "Power restored in {}. Communication lines back up. #recovery",
         "Midtown", {"retweet_count": 23, "like_count": 89},
         "https://twitter.com/utility_company/status/mock_4"),
        ("mock_5", "bluesky", "red_cross_nyc", 20,
         "Food distribution center opening at {}. Bring ID for families in need.",
         "Central Park", {"like_count": 156},
         "https://bsky.app/profile/red_cross_nyc/post/mock_5"),
    ]
    signals = [
        SocialSignal(
            id=signal_id,
            platform=platform,
            content=template.format(place or fallback_place),
            author=author,
            created_at=iso_minutes_ago(minutes),
            metrics=dict(metrics),
            url=url,
        )
        for signal_id, platform, author, minutes, template, fallback_place, metrics, url in templates
    ]
    return [s for s in signals if matches_keywords(s.content, keywords)]


def build_social_providers(config: ServiceConfig) -> List[Any]:
    """Build feed adapters from configured credentials. Test mode builds none."""
    if config.test_mode:
        return []
    providers: List[Any] = []
    if config.twitter_bearer_token:
        providers.append(
            TwitterFeedProvider(
                config.twitter_bearer_token,
                config.social_max_results,
                config.social_request_timeout,
            )
        )
    if config.enable_bluesky:
        providers.append(
            BlueskyFeedProvider(config.social_max_results, config.social_request_timeout)
        )
    return providers


def _clean_keywords(keywords: Sequence[str]) -> List[str]:
    return [kw.strip() for kw in keywords or () if kw and kw.strip()]


class SocialSignalAggregator:
    """Fan-out, dedup, prioritize, and cache social signals.

    Args:
        config: Service configuration.
        cache: TTL cache for aggregated results.
        providers: Feed adapters exposing ``name`` and ``search(keywords)``.
            Defaults to build_social_providers(config).
    """

    def __init__(
        self,
        config: ServiceConfig,
        cache: TTLCache,
        providers: Optional[List[Any]] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.providers = build_social_providers(config) if providers is None else list(providers)
        self._timers = TimerGroup()

    def calculate_priority(self, content: str, metrics: Optional[Mapping[str, Any]] = None) -> str:
        return calculate_priority(content, metrics, self.config.priority_rules)

    @staticmethod
    def cache_key(disaster_id: str, keywords: Sequence[str]) -> str:
        return f"social_media_{disaster_id}_{keyword_digest(keywords)}"

    def get_reports(self, disaster_id: str, keywords: Sequence[str] = ()) -> List[SocialSignal]:
        """Aggregated, prioritized social signals for a disaster.

        Args:
            disaster_id: Disaster identifier (or a pseudo-id such as "location_search").
            keywords: Search keywords; empty searches the default disaster terms.

        Returns:
            Deduplicated signals with priority set. Substitute signals when no
            provider returned anything.
        """
        keywords = _clean_keywords(keywords)
        key = self.cache_key(disaster_id, keywords)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Social signals for %s served from cache", disaster_id)
            return [SocialSignal.from_dict(item) for item in cached]

        query = keywords or list(self.config.social_default_keywords)
        raw = fan_out(self.providers, query, self.config.fanout_timeout, "social")

        seen = set()
        signals: List[SocialSignal] = []
        for signal in raw:
            if signal.dedup_key in seen:
                continue
            seen.add(signal.dedup_key)
            signals.append(signal)

        source = "providers"
        if not signals:
            signals = substitute_signals(keywords)
            source = "substitute"

        for signal in signals:
            signal.priority = self.calculate_priority(signal.content, signal.metrics)

        self.cache.set(key, [s.to_dict() for s in signals], self.config.cache_ttl_seconds)
        logger.info(
            "Social signals for %s: %d items from %s", disaster_id, len(signals), source
        )
        return signals

    def get_priority_alerts(self, disaster_id: str) -> List[SocialSignal]:
        """Signals for a disaster whose priority is urgent or high."""
        return [s for s in self.get_reports(disaster_id) if s.priority in Priority.ALERTING]

    def get_reports_by_location(self, keywords: Sequence[str]) -> List[SocialSignal]:
        """Signals mentioning any of the location keywords."""
        keywords = _clean_keywords(keywords)
        reports = self.get_reports(LOCATION_SEARCH_ID, keywords)
        return [s for s in reports if contains_any(s.content, keywords)]

    def platform_summary(self, disaster_id: str) -> List[PlatformSummary]:
        """Per-platform counts by priority plus the first few signals of each.

        Platforms appear in the order their first signal does.
        """
        summaries: Dict[str, PlatformSummary] = {}
        for signal in self.get_reports(disaster_id):
            summary = summaries.setdefault(signal.platform, PlatformSummary(signal.platform))
            summary.total_reports += 1
            counts = summary.priority_counts
            counts[signal.priority] = counts.get(signal.priority, 0) + 1
            if len(summary.recent_reports) < PLATFORM_SUMMARY_RECENT:
                summary.recent_reports.append(
                    {
                        "id": signal.id,
                        "content": snippet(signal.content, PLATFORM_SUMMARY_SNIPPET),
                        "priority": signal.priority,
                        "created_at": signal.created_at,
                    }
                )
        return list(summaries.values())

    def keyword_analysis(
        self, disaster_id: str, keywords: Sequence[str]
    ) -> Dict[str, KeywordMentions]:
        """Mentions of each keyword across the disaster's signals.

        Matching is a case-insensitive substring test on the content. Blank and
        repeated keywords are ignored; no keywords means no lookup at all.
        """
        wanted = list(dict.fromkeys(_clean_keywords(keywords)))
        if not wanted:
            return {}

        reports = self.get_reports(disaster_id)
        analysis: Dict[str, KeywordMentions] = {}
        for keyword in wanted:
            mentions = KeywordMentions(keyword)
            for signal in reports:
                if not contains_any(signal.content, [keyword]):
                    continue
                mentions.total_mentions += 1
                mentions.priority_breakdown[signal.priority] = (
                    mentions.priority_breakdown.get(signal.priority, 0) + 1
                )
                if len(mentions.sample_reports) < KEYWORD_SAMPLE_SIZE:
                    mentions.sample_reports.append(
                        {
                            "id": signal.id,
                            "content": snippet(signal.content, KEYWORD_SAMPLE_SNIPPET),
                            "priority": signal.priority,
                            "platform": signal.platform,
                        }
                    )
            analysis[keyword] = mentions
        return analysis

    def simulated_signal(self, disaster_id: str) -> SocialSignal:
        """One synthetic evacuation-order signal for the simulated live feed."""
        content = (
            f"New update: Evacuation order issued for {disaster_id} area. "
            "Please follow emergency instructions."
        )
        return SocialSignal(
            id=f"realtime_{int(time.time() * 1000)}",
            platform="twitter",
            content=content,
            author="emergency_services",
            created_at=utc_now_iso(),
            priority=self.calculate_priority(content, {}),
        )

    def start_simulated_feed(
        self,
        disaster_id: str,
        callback: Callable[[SocialSignal], Any],
        interval: Optional[float] = None,
    ) -> RepeatingTimer:
        """Push a synthetic signal to callback every interval seconds until cancelled."""
        timer = RepeatingTimer(
            interval or self.config.social_simulation_interval,
            lambda: callback(self.simulated_signal(disaster_id)),
            name=f"social-sim-{disaster_id}",
        )
        self._timers.add(timer.start())
        logger.info("Simulated social feed started for %s every %ss", disaster_id, timer.interval)
        return timer

    def close(self) -> None:
        """Cancel every simulated feed still running."""
        self._timers.cancel_all()
