"""Social feed provider adapters for CrisisFusion.

Adapters search a platform for posts matching keywords and normalize them to
SocialSignal. They never assign priority; the SocialSignalAggregator does.
Any transport or shape failure raises ProviderError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from requests import Session

from config.defaults import (
    BLUESKY_SEARCH_URL,
    SOCIAL_MAX_RESULTS,
    SOCIAL_REQUEST_TIMEOUT,
    TWITTER_SEARCH_URL,
)
from crisisfusion.clients.http import build_session, fetch_json
from crisisfusion.errors import ProviderError
from crisisfusion.models.feeds import SocialSignal
from crisisfusion.utils.date_utils import normalize_date_str

logger = logging.getLogger(__name__)

# Twitter recent search accepts max_results in [10, 100]
_TWITTER_MIN_RESULTS = 10
_TWITTER_MAX_RESULTS = 100

# Bluesky searchPosts accepts limit in [1, 100]
_BLUESKY_MAX_LIMIT = 100


class TwitterFeedProvider:
    """Twitter/X API v2 recent-search adapter.

    Args:
        bearer_token: App bearer token.
        max_results: Posts requested per search.
        request_timeout: HTTP timeout in seconds.
        session: Optional pre-built requests Session.
    """

    name = "twitter"

    def __init__(
        self,
        bearer_token: str,
        max_results: int = SOCIAL_MAX_RESULTS,
        request_timeout: float = SOCIAL_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        self.bearer_token = bearer_token
        self.max_results = max(_TWITTER_MIN_RESULTS, min(max_results, _TWITTER_MAX_RESULTS))
        self.request_timeout = request_timeout
        self._session = session or build_session()

    @staticmethod
    def build_query(keywords: Sequence[str]) -> str:
        """Quoted OR-query excluding retweets, e.g. '"flood" OR "Queens" -is:retweet'."""
        terms = " OR ".join(f'"{kw}"' for kw in keywords)
        return f"{terms} -is:retweet"

    def search(self, keywords: Sequence[str]) -> List[SocialSignal]:
        data = fetch_json(
            self._session,
            self.name,
            TWITTER_SEARCH_URL,
            self.request_timeout,
            params={
                "query": self.build_query(keywords),
                "max_results": self.max_results,
                "tweet.fields": "created_at,author_id,text,public_metrics",
            },
            headers={"Authorization": f"Bearer {self.bearer_token}"},
        )
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected response shape")
        if "errors" in data and "data" not in data:
            raise ProviderError(self.name, f"API errors: {data['errors']}")

        signals: List[SocialSignal] = []
        for tweet in data.get("data") or []:
            try:
                tweet_id = str(tweet["id"])
                signals.append(
                    SocialSignal(
                        id=tweet_id,
                        platform=self.name,
                        content=tweet.get("text", ""),
                        author=str(tweet.get("author_id", "")),
                        created_at=normalize_date_str(tweet.get("created_at", "")),
                        metrics=dict(tweet.get("public_metrics") or {}),
                        url=f"https://twitter.com/user/status/{tweet_id}",
                    )
                )
            except (KeyError, TypeError) as exc:
                logger.debug("Skipping malformed tweet: %s", exc)
        logger.debug("Twitter: %d posts for %s", len(signals), list(keywords))
        return signals


class BlueskyFeedProvider:
    """Bluesky public AppView ``app.bsky.feed.searchPosts`` adapter.

    The public AppView needs no credentials for search.
    """

    name = "bluesky"

    def __init__(
        self,
        max_results: int = SOCIAL_MAX_RESULTS,
        request_timeout: float = SOCIAL_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        self.max_results = max(1, min(max_results, _BLUESKY_MAX_LIMIT))
        self.request_timeout = request_timeout
        self._session = session or build_session()

    @staticmethod
    def _post_url(handle: str, uri: str) -> str:
        return f"https://bsky.app/profile/{handle}/post/{uri.rsplit('/', 1)[-1]}"

    def _to_signal(self, post: Dict[str, Any]) -> SocialSignal:
        uri = post["uri"]
        handle = post.get("author", {}).get("handle", "")
        record = post.get("record") or {}
        return SocialSignal(
            id=uri,
            platform=self.name,
            content=record.get("text", ""),
            author=handle,
            created_at=normalize_date_str(record.get("createdAt") or post.get("indexedAt", "")),
            metrics={
                "likeCount": post.get("likeCount", 0) or 0,
                "repostCount": post.get("repostCount", 0) or 0,
                "replyCount": post.get("replyCount", 0) or 0,
            },
            url=self._post_url(handle, uri),
        )

    def search(self, keywords: Sequence[str]) -> List[SocialSignal]:
        data = fetch_json(
            self._session,
            self.name,
            BLUESKY_SEARCH_URL,
            self.request_timeout,
            params={"q": " ".join(keywords), "limit": self.max_results},
        )
        if not isinstance(data, dict) or "posts" not in data:
            raise ProviderError(self.name, "unexpected response shape")

        signals: List[SocialSignal] = []
        for post in data["posts"] or []:
            try:
                signals.append(self._to_signal(post))
            except (KeyError, TypeError, AttributeError) as exc:
                logger.debug("Skipping malformed Bluesky post: %s", exc)
        logger.debug("Bluesky: %d posts for %s", len(signals), list(keywords))
        return signals
