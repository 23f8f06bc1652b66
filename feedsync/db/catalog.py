"""SQLAlchemy implementation of the catalog repository."""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Mapping, Sequence

from sqlalchemy import bindparam, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from feedsync.db.schema import SYNC_EVENT, products, timestamps
from feedsync.errors import RepositoryIOFailure
from feedsync.ingest.models import Availability, CatalogCandidate, CatalogRecord
from feedsync.logic.patch import RecordPatch

logger = logging.getLogger(__name__)

PATCH_COLUMNS = {
    "availability": "available",
    "price": "price",
    "old_price": "old_price",
    "currency": "currency",
    "renewed_at": "renewed_at",
    "needs_renew": "needs_renew",
}


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Catalog %s failed: %s", operation, exc)
        raise RepositoryIOFailure(f"Catalog {operation} failed: {exc}") from exc


class SqlCatalogRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def find_by_external_ids(self, external_ids: set[str]) -> list[CatalogRecord]:
        if not external_ids:
            return []
        stmt = select(products).where(products.c.external_id.in_(sorted(external_ids)))
        with store_errors("lookup"), self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_to_record(row) for row in rows]

    def batch_update(self, patches: Sequence[RecordPatch]) -> None:
        # One executemany per distinct set of changed columns.
        groups: dict[tuple[str, ...], list[dict[str, Any]]] = defaultdict(list)
        for patch in patches:
            values = {PATCH_COLUMNS[name]: _stored(value) for name, value in patch.columns().items()}
            if not values:
                continue
            params = {f"b_{column}": value for column, value in values.items()}
            params["b_record_id"] = patch.record_id
            groups[tuple(sorted(values))].append(params)
        if not groups:
            return
        with store_errors("update"), self.engine.begin() as conn:
            for columns, rows in groups.items():
                stmt = (
                    update(products)
                    .where(products.c.id == bindparam("b_record_id"))
                    .values({column: bindparam(f"b_{column}") for column in columns})
                )
                conn.execute(stmt, rows)

    def batch_insert(self, candidates: Sequence[CatalogCandidate], renewed_at: datetime) -> None:
        if not candidates:
            return
        rows = [
            {
                "external_id": candidate.external_id,
                "category_id": candidate.category_id,
                "name": candidate.name,
                "price": candidate.price,
                "old_price": candidate.old_price,
                "currency": candidate.currency,
                "available": _stored(candidate.availability),
                "description": candidate.description,
                "renewed_at": renewed_at,
                "needs_renew": True,
            }
            for candidate in candidates
        ]
        with store_errors("insert"), self.engine.begin() as conn:
            conn.execute(insert(products), rows)

    def scan_available_after(self, cursor_id: int, page_size: int) -> list[tuple[int, str]]:
        stmt = (
            select(products.c.id, products.c.external_id)
            .where(products.c.id > cursor_id)
            .where(products.c.available == Availability.AVAILABLE.value)
            .order_by(products.c.id)
            .limit(page_size)
        )
        with store_errors("scan"), self.engine.connect() as conn:
            return [(row.id, row.external_id) for row in conn.execute(stmt)]

    def count_available(self) -> int:
        stmt = select(func.count()).select_from(products).where(products.c.available == Availability.AVAILABLE.value)
        with store_errors("count"), self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def record_successful_run(self, at: datetime) -> None:
        with store_errors("timestamp update"), self.engine.begin() as conn:
            result = conn.execute(
                update(timestamps).where(timestamps.c.event == SYNC_EVENT).values(event_date=at)
            )
            if result.rowcount == 0:
                conn.execute(insert(timestamps).values(event=SYNC_EVENT, event_date=at))

    def last_successful_run(self) -> datetime | None:
        stmt = select(timestamps.c.event_date).where(timestamps.c.event == SYNC_EVENT)
        with store_errors("timestamp lookup"), self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one_or_none()


def _stored(value: Any) -> Any:
    if isinstance(value, Availability):
        return value.value
    return value


def _to_record(row: Mapping[str, Any]) -> CatalogRecord:
    return CatalogRecord(
        id=row["id"],
        external_id=row["external_id"],
        category_id=row["category_id"],
        name=row["name"],
        price=row["price"],
        old_price=row["old_price"],
        currency=row["currency"],
        availability=Availability.from_stored(row["available"]),
        description=row["description"],
        renewed_at=row["renewed_at"],
        needs_renew=bool(row["needs_renew"]),
    )
