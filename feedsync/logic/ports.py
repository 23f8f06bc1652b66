"""Catalog store interface used by reconciliation and the missing sweep."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from feedsync.ingest.models import CatalogCandidate, CatalogRecord
from feedsync.logic.patch import RecordPatch


class CatalogRepository(Protocol):
    def find_by_external_ids(self, external_ids: set[str]) -> list[CatalogRecord]:
        ...

    def batch_update(self, patches: Sequence[RecordPatch]) -> None:
        ...

    def batch_insert(self, candidates: Sequence[CatalogCandidate], renewed_at: datetime) -> None:
        ...

    def scan_available_after(self, cursor_id: int, page_size: int) -> list[tuple[int, str]]:
        """Available records with ``id > cursor_id``, ascending by id."""
        ...

    def count_available(self) -> int:
        ...

    def record_successful_run(self, at: datetime) -> None:
        ...
