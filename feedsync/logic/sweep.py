"""Marking catalog records that disappeared from the feed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AbstractSet

from feedsync.ingest.models import Availability
from feedsync.logic.patch import RecordPatch, SetTo
from feedsync.logic.ports import CatalogRepository
from feedsync.logic.stats import NullObserver, ProgressObserver

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class MissingSweep:
    """Marks available records whose external id is absent from the feed.

    The catalog is paged by ascending id with the last id of each page as
    the cursor for the next one, and only available records are scanned.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        *,
        renewed_at: datetime,
        page_size: int = DEFAULT_PAGE_SIZE,
        observer: ProgressObserver | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.repository = repository
        self.renewed_at = renewed_at
        self.page_size = page_size
        self.observer = observer or NullObserver()

    def run(self, seen_ids: AbstractSet[str]) -> int:
        total = self.repository.count_available()
        logger.info("Searching missing products among %s available", total)
        cursor = 0
        processed = 0
        marked = 0
        while True:
            page = self.repository.scan_available_after(cursor, self.page_size)
            if not page:
                break
            last_id = page[-1][0]
            if last_id <= cursor:
                raise RuntimeError(f"Catalog scan did not advance past id {cursor}")
            cursor = last_id
            processed += len(page)

            missing = [record_id for record_id, external_id in page if external_id not in seen_ids]
            if missing:
                self.repository.batch_update([self._unavailable(record_id) for record_id in missing])
                marked += len(missing)
            self.observer.on_sweep_progress(processed, total)

        logger.info("Marked %s missing products as unavailable", marked)
        return marked

    def _unavailable(self, record_id: int) -> RecordPatch:
        return RecordPatch(
            record_id=record_id,
            availability=SetTo(Availability.NOT_AVAILABLE),
            renewed_at=self.renewed_at,
            needs_renew=True,
        )
