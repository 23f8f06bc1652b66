"""Celery configuration for the scheduled feed sync."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from feedsync.utils.dates import timezone_name

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery("feedsync", broker=broker_url, backend=backend_url)
celery_app.conf.timezone = timezone_name()
celery_app.conf.beat_schedule = {
    "feed-sync": {
        "task": "feedsync.jobs.sync.sync_feed",
        "schedule": crontab(hour=os.environ.get("SYNC_HOUR", "*/6"), minute=os.environ.get("SYNC_MINUTE", "15")),
    },
}


@celery_app.task(name="feedsync.jobs.sync.sync_feed")
def run_scheduled_sync_task() -> dict[str, int]:
    from dotenv import load_dotenv

    from feedsync.jobs.sync import SyncOptions, sync_feed

    load_dotenv()
    source = os.environ["FEED_SOURCE"]
    options = SyncOptions.from_flags(os.environ.get("FEED_SYNC_FLAGS", "").split(","))
    stats = sync_feed(source, options, progress=False)
    return {
        "total_offers": stats.total_offers,
        "parsed_offers": stats.parsed_offers,
        "ignored_offers": stats.ignored_offers,
        "price_changed": stats.price_changed,
        "availability_changed": stats.availability_changed,
        "inserted": stats.inserted,
        "updated_records": stats.updated_records,
        "marked_unavailable": stats.marked_unavailable,
    }
