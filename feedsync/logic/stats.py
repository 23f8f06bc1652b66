"""Run statistics and progress reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChunkResult:
    price_changed: int = 0
    availability_changed: int = 0
    inserted: int = 0
    updated_records: int = 0
    duration: float = 0.0


@dataclass(slots=True)
class ProcessingStats:
    total_offers: int = 0
    ignored_offers: int = 0
    parsed_offers: int = 0
    price_changed: int = 0
    availability_changed: int = 0
    inserted: int = 0
    updated_records: int = 0
    marked_unavailable: int = 0
    chunks: int = 0
    total_duration: float = 0.0
    sync_duration: float = 0.0

    @property
    def parse_duration(self) -> float:
        return max(self.total_duration - self.sync_duration, 0.0)

    def absorb(self, result: ChunkResult) -> None:
        self.chunks += 1
        self.price_changed += result.price_changed
        self.availability_changed += result.availability_changed
        self.inserted += result.inserted
        self.updated_records += result.updated_records
        self.sync_duration += result.duration

    def summary_lines(self) -> list[str]:
        return [
            f"Total offers: {self.total_offers}",
            f"Parsed offers: {self.parsed_offers}",
            f"Ignored offers: {self.ignored_offers}",
            f"Offers with changed price: {self.price_changed}",
            f"Offers with changed availability: {self.availability_changed}",
            f"New offers: {self.inserted}",
            f"Updated records: {self.updated_records}",
            f"Marked as unavailable: {self.marked_unavailable}",
            f"Total time: {self.total_duration:.2f}s",
            f"Parsing time: {self.parse_duration:.2f}s",
            f"Syncing time: {self.sync_duration:.2f}s",
        ]


class ProgressObserver(Protocol):
    def on_feed_progress(self, position: int, total: int | None) -> None:
        ...

    def on_sweep_progress(self, processed: int, total: int) -> None:
        ...


class NullObserver:
    def on_feed_progress(self, position: int, total: int | None) -> None:
        pass

    def on_sweep_progress(self, processed: int, total: int) -> None:
        pass


class LoggingProgressObserver:
    """Logs progress whenever another ``step`` percent is done."""

    def __init__(self, *, step: int = 10) -> None:
        self.step = step
        self._feed_reported = 0
        self._sweep_reported = 0

    def on_feed_progress(self, position: int, total: int | None) -> None:
        if not total:
            return
        percent = min(position * 100 // total, 100)
        if percent >= self._feed_reported + self.step:
            self._feed_reported = percent - percent % self.step
            logger.info("Parsing feed and updating products: %s%% (%s/%s bytes)", percent, position, total)

    def on_sweep_progress(self, processed: int, total: int) -> None:
        if not total:
            return
        percent = min(processed * 100 // total, 100)
        if percent >= self._sweep_reported + self.step:
            self._sweep_reported = percent - percent % self.step
            logger.info("Searching missing products: %s%% (%s/%s)", percent, processed, total)
