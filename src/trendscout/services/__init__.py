"""Service layer entry points for Trend Scout."""

from __future__ import annotations

from .aggregator import aggregate, merge_outcomes  # noqa: F401
from .sources import SourceFetcher, SourceFormatError  # noqa: F401

__all__ = ["SourceFetcher", "SourceFormatError", "aggregate", "merge_outcomes"]
