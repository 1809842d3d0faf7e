"""Convenience script for running a single trend aggregation locally."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure the src directory is on the Python path so the trendscout package can be imported
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from trendscout.config import AgentConfig  # noqa: E402  (import after path setup)
from trendscout.models import TrendQuery  # noqa: E402
from trendscout.services.aggregator import aggregate  # noqa: E402
from trendscout.services.sources import SourceFetcher  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch trending topics and print them as JSON.")
    parser.add_argument(
        "--sources",
        nargs="+",
        default=["all"],
        help="Sources to query: reddit, hackernews, lobsters or all (default: all)",
    )
    parser.add_argument("--limit", type=int, default=10, help="Maximum number of trends (1-50)")
    parser.add_argument("--category", default=None, help="Subreddit to read instead of the default")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Run one aggregation with the environment configuration and print the result."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    args = parse_args(argv)

    try:
        config = AgentConfig.from_env()
        query = TrendQuery(sources=args.sources, limit=args.limit, category=args.category)
    except ValueError as exc:
        logging.error("Invalid input: %s", exc)
        sys.exit(2)

    with SourceFetcher.from_config(config) as fetcher:
        result = asyncio.run(aggregate(query, fetcher))
    logging.info("Received data from %s", ", ".join(result.sources) or "no sources")

    print(result.model_dump_json(indent=2))


if __name__ == "__main__":
    main()
