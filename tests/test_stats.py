import logging
from datetime import datetime
from decimal import Decimal

from feedsync.logic.patch import CLEAR, UNCHANGED, RecordPatch, SetTo, change_to
from feedsync.logic.stats import ChunkResult, LoggingProgressObserver, ProcessingStats


def test_absorb_accumulates_chunk_results():
    stats = ProcessingStats()
    stats.absorb(ChunkResult(price_changed=2, availability_changed=1, inserted=3, updated_records=2, duration=0.5))
    stats.absorb(ChunkResult(price_changed=1, updated_records=1, duration=0.25))
    assert (stats.chunks, stats.price_changed, stats.availability_changed, stats.inserted) == (2, 3, 1, 3)
    stats.total_duration = 2.0
    assert stats.parse_duration == 1.25
    assert stats.updated_records == 3
    assert "Offers with changed price: 3" in stats.summary_lines()
    assert "Updated records: 3" in stats.summary_lines()


def test_progress_logged_once_per_step(caplog):
    observer = LoggingProgressObserver(step=50)
    with caplog.at_level(logging.INFO, logger="feedsync.logic.stats"):
        for position in (10, 40, 55, 60, 99, 100):
            observer.on_feed_progress(position, 100)
        observer.on_feed_progress(5, None)
    messages = [record.getMessage() for record in caplog.records]
    assert len(messages) == 2
    assert "50%" not in messages[0] and "55%" in messages[0]
    assert "100%" in messages[1]


def test_patch_columns_skip_unchanged_fields():
    at = datetime(2024, 5, 1)
    patch = RecordPatch(1, price=SetTo(Decimal("1.00")), old_price=CLEAR, renewed_at=at, needs_renew=True)
    assert patch.columns() == {"price": Decimal("1.00"), "old_price": None, "renewed_at": at, "needs_renew": True}
    assert patch.currency is UNCHANGED
    assert RecordPatch(1, renewed_at=at, needs_renew=True).is_empty


def test_change_to_maps_none_to_clear():
    assert change_to(None) is CLEAR
    assert change_to("UAH") == SetTo("UAH")
