"""Fetchers for the upstream trending-content APIs."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List

import requests

from trendscout.config import DEFAULT_USER_AGENT, AgentConfig
from trendscout.models import SourceOutcome, TrendItem, subreddit_name

__all__ = [
    "SourceFetcher",
    "SourceFormatError",
    "normalize_hackernews_item",
    "normalize_lobsters_story",
    "normalize_reddit_listing",
]

logger = logging.getLogger(__name__)

REDDIT_HOT_URL = "https://www.reddit.com/r/{subreddit}/hot.json"
REDDIT_BASE_URL = "https://reddit.com"
HN_TOP_STORIES_URL = "https://hacker-news.firebaseio.com/v0/topstories.json"
HN_ITEM_URL = "https://hacker-news.firebaseio.com/v0/item/{}.json"
HN_DISCUSSION_URL = "https://news.ycombinator.com/item?id={}"
LOBSTERS_HOTTEST_URL = "https://lobste.rs/hottest.json"

DEFAULT_TIMEOUT = 10.0
MAX_HN_WORKERS = 8


class SourceFormatError(ValueError):
    """Raised when an upstream payload does not have the expected shape."""


def _count(value: Any) -> int | None:
    # bool is an int subclass but never a meaningful counter
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_reddit_listing(payload: Any) -> List[TrendItem]:
    """Map a Reddit ``hot.json`` listing to trend items."""

    if not isinstance(payload, dict):
        raise SourceFormatError("Reddit listing is not a JSON object")
    data = payload.get("data")
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        raise SourceFormatError("Reddit listing has no data.children array")

    items: List[TrendItem] = []
    for child in children:
        post = child.get("data") if isinstance(child, dict) else None
        if not isinstance(post, dict):
            continue
        title = _text(post.get("title"))
        if title is None:
            logger.debug("Skipping Reddit post without a title")
            continue

        permalink = _text(post.get("permalink"))
        items.append(
            TrendItem(
                title=title,
                source="reddit",
                url=f"{REDDIT_BASE_URL}{permalink}" if permalink else None,
                score=_count(post.get("score")),
                comments=_count(post.get("num_comments")),
            )
        )
    return items


def normalize_hackernews_item(payload: Any) -> TrendItem | None:
    """Map a Hacker News item body to a trend item, or ``None`` when unusable."""

    if not isinstance(payload, dict):
        return None
    title = _text(payload.get("title"))
    if title is None:
        return None

    url = _text(payload.get("url"))
    if url is None and payload.get("id") is not None:
        url = HN_DISCUSSION_URL.format(payload["id"])

    return TrendItem(
        title=title,
        source="hackernews",
        url=url,
        score=_count(payload.get("score")),
        comments=_count(payload.get("descendants")) or 0,
    )


def normalize_lobsters_story(payload: Any) -> TrendItem | None:
    """Map a Lobsters story to a trend item, or ``None`` when unusable."""

    if not isinstance(payload, dict):
        return None
    title = _text(payload.get("title"))
    if title is None:
        return None

    return TrendItem(
        title=title,
        source="lobsters",
        url=_text(payload.get("url")) or _text(payload.get("short_id_url")),
        score=_count(payload.get("score")),
        comments=_count(payload.get("comment_count")),
    )


class SourceFetcher:
    """Fetch and normalise trending items from each supported source.

    :meth:`fetch` is the boundary used by the aggregator: it never raises and
    reports failures through :class:`~trendscout.models.SourceOutcome`. The
    ``fetch_<source>`` methods raise on network or format errors.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        reddit_default_subreddit: str = "all",
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.reddit_default_subreddit = reddit_default_subreddit
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})

    def __enter__(self) -> "SourceFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP session unless it was supplied by the caller."""

        if self._owns_session:
            self._session.close()

    @classmethod
    def from_config(cls, config: AgentConfig) -> "SourceFetcher":
        return cls(
            user_agent=config.user_agent,
            timeout=config.request_timeout,
            reddit_default_subreddit=config.reddit_default_subreddit,
        )

    @property
    def handlers(self) -> Dict[str, Callable[[int, str | None], List[TrendItem]]]:
        return {
            "reddit": self.fetch_reddit,
            "hackernews": lambda limit, _category: self.fetch_hackernews(limit),
            "lobsters": lambda limit, _category: self.fetch_lobsters(limit),
        }

    def fetch(self, source: str, limit: int, category: str | None = None) -> SourceOutcome:
        """Fetch ``source`` and return its outcome without raising."""

        handler = self.handlers.get(source)
        if handler is None:
            raise ValueError(f"Unknown source: {source}")

        try:
            items = handler(limit, category)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Failed to fetch %s: %s", source, exc)
            return SourceOutcome.failed(source, str(exc) or exc.__class__.__name__)
        except Exception as exc:  # noqa: BLE001 - a broken source must not break its siblings
            logger.exception("Unexpected error while fetching %s", source)
            return SourceOutcome.failed(source, str(exc) or exc.__class__.__name__)

        logger.debug("Fetched %d items from %s", len(items), source)
        return SourceOutcome(source=source, items=items)

    def _get_json(self, url: str, params: dict | None = None) -> Any:
        response = self._session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def fetch_reddit(self, limit: int, category: str | None = None) -> List[TrendItem]:
        subreddit = subreddit_name(category) or subreddit_name(self.reddit_default_subreddit) or "all"
        payload = self._get_json(REDDIT_HOT_URL.format(subreddit=subreddit), params={"limit": limit})
        # Stickied posts are returned on top of the requested limit.
        return normalize_reddit_listing(payload)[:limit]

    def fetch_hackernews(self, limit: int) -> List[TrendItem]:
        story_ids = self._get_json(HN_TOP_STORIES_URL)
        if not isinstance(story_ids, list):
            raise SourceFormatError("Hacker News top stories is not a JSON array")

        story_ids = story_ids[:limit]
        if not story_ids:
            return []

        with ThreadPoolExecutor(max_workers=min(MAX_HN_WORKERS, len(story_ids))) as executor:
            stories = list(executor.map(self._fetch_hackernews_story, story_ids))

        return [story for story in stories if story is not None]

    def _fetch_hackernews_story(self, story_id: Any) -> TrendItem | None:
        try:
            payload = self._get_json(HN_ITEM_URL.format(story_id))
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Failed to fetch Hacker News story %s: %s", story_id, exc)
            return None
        return normalize_hackernews_item(payload)

    def fetch_lobsters(self, limit: int) -> List[TrendItem]:
        payload = self._get_json(LOBSTERS_HOTTEST_URL)
        if not isinstance(payload, list):
            raise SourceFormatError("Lobsters hottest listing is not a JSON array")

        stories = (normalize_lobsters_story(story) for story in payload[:limit])
        return [story for story in stories if story is not None]
