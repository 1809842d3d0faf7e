"""Domain models used across the application."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, Field, field_validator

SourceName = Literal["reddit", "hackernews", "lobsters"]
SourceSelector = Literal["reddit", "hackernews", "lobsters", "all"]

#: Every source the aggregator knows how to fetch, in expansion order.
KNOWN_SOURCES: tuple[str, ...] = get_args(SourceName)
ALL_SOURCES = "all"

#: Subreddit names, including ``a+b`` multireddits.
SUBREDDIT_PATTERN = re.compile(r"[A-Za-z0-9_+]{1,50}")


def subreddit_name(value: str | None) -> str | None:
    """Return ``value`` as a bare subreddit name, or ``None`` when it is blank.

    An ``r/`` or ``/r/`` prefix is accepted and removed. Anything else that is
    not a plain subreddit name raises ``ValueError``: the name is interpolated
    into the Reddit URL path, so slashes, dots and query characters must never
    get through.
    """

    if value is None:
        return None
    name = value.strip()
    if not name:
        return None
    for prefix in ("/r/", "r/"):
        if name.lower().startswith(prefix):
            name = name[len(prefix) :]
            break
    if not SUBREDDIT_PATTERN.fullmatch(name):
        raise ValueError(f"Invalid subreddit name: {value!r}")
    return name


class TrendItem(BaseModel):
    """A single trending entry normalised from one of the upstream sources."""

    title: str
    source: SourceName
    url: Optional[str] = None
    score: Optional[int] = None
    comments: Optional[int] = None

    @property
    def rank_score(self) -> int:
        """Score used for ordering; a missing score ranks as zero."""

        return self.score or 0


class TrendQuery(BaseModel):
    """Input accepted by the aggregator and the ``get-trends`` entrypoint."""

    sources: List[SourceSelector] = Field(default_factory=lambda: [ALL_SOURCES], min_length=1)
    limit: int = Field(default=10, ge=1, le=50)
    category: Optional[str] = Field(
        default=None,
        description="Sub-forum hint; only the Reddit source uses it to pick a subreddit.",
    )
    query: Optional[str] = Field(
        default=None,
        description="Alias for ``category`` accepted for compatibility with the scout entrypoints.",
    )

    @field_validator("category", "query")
    @classmethod
    def _check_subreddit(cls, value: Optional[str]) -> Optional[str]:
        return subreddit_name(value)

    def expanded_sources(self) -> List[str]:
        """Return the requested sources with ``all`` expanded and duplicates removed."""

        expanded: List[str] = []
        for selector in self.sources:
            names = KNOWN_SOURCES if selector == ALL_SOURCES else (selector,)
            for name in names:
                if name not in expanded:
                    expanded.append(name)
        return expanded

    @property
    def category_hint(self) -> str | None:
        for value in (self.category, self.query):
            if value and value.strip():
                return value.strip()
        return None


class SourceOutcome(BaseModel):
    """Result of fetching a single source.

    A failed fetch is represented by ``error`` being set and ``items`` being
    empty rather than by an exception, so callers can merge outcomes without
    any error handling of their own.
    """

    source: SourceName
    items: List[TrendItem] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, source: str, error: str) -> "SourceOutcome":
        return cls(source=source, items=[], error=error)


class TrendResult(BaseModel):
    """Merged, ranked and truncated aggregation output."""

    trends: List[TrendItem] = Field(default_factory=list)
    sources: List[SourceName] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
