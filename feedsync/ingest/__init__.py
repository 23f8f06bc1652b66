"""Feed ingestion: sources, parsing and validation."""

from __future__ import annotations

from feedsync.ingest.feed import FeedParser, parse_offers
from feedsync.ingest.models import Availability, CatalogCandidate, CatalogRecord, RawOffer
from feedsync.ingest.source import FeedSource, open_feed
from feedsync.ingest.validate import to_candidate

__all__ = [
    "Availability",
    "CatalogCandidate",
    "CatalogRecord",
    "FeedParser",
    "FeedSource",
    "RawOffer",
    "open_feed",
    "parse_offers",
    "to_candidate",
]
