"""Merge trending items from several sources into one ranked list."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Iterable, List, Protocol

from fastapi.concurrency import run_in_threadpool

from trendscout.models import SourceOutcome, TrendItem, TrendQuery, TrendResult
from trendscout.services.sources import SourceFetcher

__all__ = ["Fetcher", "aggregate", "merge_outcomes"]

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def fetch(self, source: str, limit: int, category: str | None = None) -> SourceOutcome:
        ...


def merge_outcomes(outcomes: Iterable[SourceOutcome], limit: int) -> TrendResult:
    """Concatenate ``outcomes`` in order, rank by score and keep the top ``limit``."""

    items: List[TrendItem] = []
    sources: List[str] = []
    for outcome in outcomes:
        if not outcome.items:
            continue
        items.extend(outcome.items)
        if outcome.source not in sources:
            sources.append(outcome.source)

    # sorted() is stable, so equal scores keep their fetch order.
    ranked = sorted(items, key=lambda item: item.rank_score, reverse=True)

    return TrendResult(trends=ranked[:limit], sources=sources, timestamp=datetime.now(UTC))


async def aggregate(query: TrendQuery, fetcher: Fetcher | None = None) -> TrendResult:
    """Fetch every requested source concurrently and merge the results.

    Without a ``fetcher`` a default :class:`SourceFetcher` is created for this
    call and closed once the fetches are done.
    """

    if fetcher is None:
        with SourceFetcher() as owned:
            return await aggregate(query, owned)

    requested = query.expanded_sources()
    category = query.category_hint

    outcomes = await asyncio.gather(
        *(run_in_threadpool(fetcher.fetch, source, query.limit, category) for source in requested)
    )

    failed = [outcome.source for outcome in outcomes if not outcome.ok]
    if failed:
        logger.info("Sources unavailable for this request: %s", ", ".join(failed))

    result = merge_outcomes(outcomes, query.limit)
    logger.info(
        "Aggregated %d trends from %s (requested %s, limit %d)",
        len(result.trends),
        ", ".join(result.sources) or "no sources",
        ", ".join(requested),
        query.limit,
    )
    return result
