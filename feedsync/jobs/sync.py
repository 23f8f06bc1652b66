"""Feed synchronization job and command-line entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from feedsync.db.catalog import SqlCatalogRepository, store_errors
from feedsync.db.migrate import run_migrations
from feedsync.db.session import create_engine_from_env
from feedsync.errors import FeedSyncError
from feedsync.ingest.feed import FeedParser
from feedsync.ingest.models import CURRENCIES, CatalogCandidate
from feedsync.ingest.source import FeedSource, open_feed
from feedsync.ingest.validate import to_candidate
from feedsync.logic.ports import CatalogRepository
from feedsync.logic.reconcile import DEFAULT_CHUNK_SIZE, ReconciliationEngine, SyncPolicy
from feedsync.logic.stats import LoggingProgressObserver, NullObserver, ProcessingStats, ProgressObserver
from feedsync.logic.sweep import MissingSweep
from feedsync.utils.dates import utc_now
from feedsync.utils.log import configure_logging

logger = logging.getLogger(__name__)

FLAG_NAMES = ("update-available", "update-price", "insert-new", "mark-missing-unavailable")


@dataclass(slots=True, frozen=True)
class SyncOptions:
    policy: SyncPolicy = field(default_factory=SyncPolicy)
    mark_missing_unavailable: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE
    default_currency: str | None = None

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("Chunk size must be positive")
        if self.default_currency is not None and self.default_currency not in CURRENCIES:
            raise ValueError(f"Unsupported default currency: {self.default_currency}")

    @classmethod
    def from_flags(cls, flags: Iterable[str], **overrides) -> SyncOptions:
        enabled = {flag.strip() for flag in flags if flag.strip()}
        unknown = enabled - set(FLAG_NAMES)
        if unknown:
            raise ValueError(f"Unknown sync flags: {', '.join(sorted(unknown))}")
        policy = SyncPolicy(
            update_availability="update-available" in enabled,
            update_price="update-price" in enabled,
            insert_new="insert-new" in enabled,
        )
        overrides.setdefault("chunk_size", env_chunk_size())
        overrides.setdefault("default_currency", env_default_currency())
        return cls(policy=policy, mark_missing_unavailable="mark-missing-unavailable" in enabled, **overrides)


def env_chunk_size() -> int:
    return int(os.environ.get("FEED_CHUNK_SIZE", DEFAULT_CHUNK_SIZE))


def env_default_currency() -> str | None:
    return os.environ.get("FEED_DEFAULT_CURRENCY") or None


def run_sync(
    feed: FeedSource,
    repository: CatalogRepository,
    options: SyncOptions,
    observer: ProgressObserver | None = None,
) -> ProcessingStats:
    """Reconcile every offer of ``feed`` with the catalog.

    Each chunk is written as soon as it is full, so a fatal error leaves the
    chunks before it applied. The successful-run timestamp is recorded only
    when the whole feed, and the missing sweep if enabled, went through.
    """
    observer = observer or NullObserver()
    started = time.monotonic()
    renewed_at = utc_now()
    stats = ProcessingStats()
    engine = ReconciliationEngine(repository, options.policy, renewed_at)
    parser = FeedParser(feed.chunks, default_currency=options.default_currency)
    seen_ids: set[str] = set()
    bucket: list[CatalogCandidate] = []

    logger.info("Processing feed %s", feed.name)
    for offer in parser:
        stats.total_offers += 1
        candidate = to_candidate(offer)
        if candidate is None:
            stats.ignored_offers += 1
        else:
            stats.parsed_offers += 1
            if options.mark_missing_unavailable:
                seen_ids.add(candidate.external_id)
            bucket.append(candidate)
            if len(bucket) >= options.chunk_size:
                stats.absorb(engine.reconcile(bucket))
                bucket = []
                logger.info("Processed %s offers", stats.total_offers)
        observer.on_feed_progress(parser.bytes_read, feed.total_size)

    if bucket:
        stats.absorb(engine.reconcile(bucket))

    if options.mark_missing_unavailable:
        sweep = MissingSweep(repository, renewed_at=renewed_at, page_size=options.chunk_size, observer=observer)
        stats.marked_unavailable = sweep.run(seen_ids)

    repository.record_successful_run(renewed_at)
    stats.total_duration = time.monotonic() - started
    return stats


def sync_feed(
    source: str,
    options: SyncOptions,
    *,
    engine: Engine | None = None,
    progress: bool = True,
) -> ProcessingStats:
    owns_engine = engine is None
    engine = engine or create_engine_from_env()
    observer = LoggingProgressObserver() if progress else NullObserver()
    try:
        with store_errors("migration"):
            run_migrations(engine)
        repository = SqlCatalogRepository(engine)
        with open_feed(source) as feed:
            return run_sync(feed, repository, options, observer)
    finally:
        if owns_engine:
            engine.dispose()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise a supplier offer feed into the product catalog")
    parser.add_argument("feed", help="Path or http(s) URL of the YML feed")
    parser.add_argument("--update-available", action="store_true", help="Write availability changes")
    parser.add_argument("--update-price", action="store_true", help="Write price, old price and currency changes")
    parser.add_argument("--insert-new", action="store_true", help="Insert offers missing from the catalog")
    parser.add_argument(
        "--mark-missing-unavailable",
        action="store_true",
        help="Mark available products absent from the feed as unavailable",
    )
    parser.add_argument("--no-progress", action="store_true", help="Do not report progress")
    parser.add_argument(
        "--chunk-size",
        type=int,
        help=f"Offers reconciled per batch (default: FEED_CHUNK_SIZE or {DEFAULT_CHUNK_SIZE})",
    )
    parser.add_argument("--database-url", help="Overrides DATABASE_URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    load_dotenv()
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(verbose=args.verbose)
    flags = [name for name in FLAG_NAMES if getattr(args, name.replace("-", "_"))]
    overrides = {} if args.chunk_size is None else {"chunk_size": args.chunk_size}
    try:
        options = SyncOptions.from_flags(flags, **overrides)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    engine = None
    try:
        engine = create_engine_from_env(args.database_url)
        stats = sync_feed(args.feed, options, engine=engine, progress=not args.no_progress)
    except (FeedSyncError, SQLAlchemyError) as exc:
        logger.error("Sync aborted: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        if engine is not None:
            engine.dispose()

    for line in stats.summary_lines():
        print(line)


if __name__ == "__main__":
    main()
