"""Diffing feed candidates against the catalog."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from feedsync.ingest.models import CatalogCandidate, CatalogRecord
from feedsync.logic.patch import UNCHANGED, RecordPatch, SetTo, change_to
from feedsync.logic.ports import CatalogRepository
from feedsync.logic.stats import ChunkResult

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000


@dataclass(slots=True, frozen=True)
class SyncPolicy:
    """Which kinds of writes a run is allowed to make.

    Changes are detected and counted whatever the policy says, so a run
    with everything disabled reports what would have changed.
    """

    update_availability: bool = False
    update_price: bool = False
    insert_new: bool = False


def availability_changed(candidate: CatalogCandidate, record: CatalogRecord) -> bool:
    return candidate.availability != record.availability


def price_group_changed(candidate: CatalogCandidate, record: CatalogRecord) -> bool:
    return (
        candidate.price != record.price
        or candidate.old_price != record.old_price
        or candidate.currency != record.currency
    )


class ReconciliationEngine:
    def __init__(self, repository: CatalogRepository, policy: SyncPolicy, renewed_at: datetime) -> None:
        self.repository = repository
        self.policy = policy
        self.renewed_at = renewed_at

    def reconcile(self, chunk: Sequence[CatalogCandidate]) -> ChunkResult:
        started = time.monotonic()
        result = ChunkResult()
        if not chunk:
            return result

        existing = self.repository.find_by_external_ids({candidate.external_id for candidate in chunk})
        by_external_id = {record.external_id: record for record in existing}

        patches: list[RecordPatch] = []
        inserts: list[CatalogCandidate] = []
        seen: set[str] = set()
        for candidate in chunk:
            if candidate.external_id in seen:
                logger.warning("%s: duplicate offer in feed, skipped", candidate.external_id)
                continue
            seen.add(candidate.external_id)
            record = by_external_id.get(candidate.external_id)
            if record is None:
                inserts.append(candidate)
                continue
            patch = self._diff(candidate, record, result)
            if patch is not None:
                patches.append(patch)

        result.inserted = len(inserts)
        if patches:
            self.repository.batch_update(patches)
            result.updated_records = len(patches)
        if inserts and self.policy.insert_new:
            self.repository.batch_insert(inserts, self.renewed_at)

        result.duration = time.monotonic() - started
        logger.debug(
            "Chunk of %s reconciled: %s updated, %s new",
            len(chunk),
            result.updated_records,
            result.inserted,
        )
        return result

    def _diff(self, candidate: CatalogCandidate, record: CatalogRecord, result: ChunkResult) -> RecordPatch | None:
        availability = UNCHANGED
        price = old_price = currency = UNCHANGED
        if availability_changed(candidate, record):
            result.availability_changed += 1
            if self.policy.update_availability:
                availability = SetTo(candidate.availability)
        if price_group_changed(candidate, record):
            result.price_changed += 1
            if self.policy.update_price:
                price = SetTo(candidate.price)
                old_price = change_to(candidate.old_price)
                currency = change_to(candidate.currency)
        if availability is UNCHANGED and price is UNCHANGED:
            return None
        return RecordPatch(
            record_id=record.id,
            availability=availability,
            price=price,
            old_price=old_price,
            currency=currency,
            renewed_at=self.renewed_at,
            needs_renew=True,
        )
