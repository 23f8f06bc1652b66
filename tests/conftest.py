from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine

from feedsync.db.catalog import SqlCatalogRepository
from feedsync.db.schema import metadata, products
from feedsync.ingest.models import Availability, CatalogRecord

FEED_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE yml_catalog SYSTEM "shops.dtd">
<yml_catalog date="2024-05-01 10:00">
<shop>
<name>Supplier</name>
<currencies><currency id="UAH" rate="1"/></currencies>
<categories><category id="5">Tools</category></categories>
<offers>
"""
FEED_FOOTER = """</offers>
</shop>
</yml_catalog>
"""


def build_feed(offers: str) -> bytes:
    return (FEED_HEADER + offers + FEED_FOOTER).encode("utf-8")


def offer_xml(external_id: str, *, available: str | None = "true", price: str = "10", name: str = "Foo", category: str = "5", extra: str = "") -> str:
    attrs = f' id="{external_id}"'
    if available is not None:
        attrs += f' available="{available}"'
    return (
        f"<offer{attrs}>"
        f"<price>{price}</price><currencyId>UAH</currencyId><categoryId>{category}</categoryId>"
        f"<name>{name}</name>{extra}</offer>\n"
    )


class MemoryCatalog:
    """In-memory catalog that records every call made to it."""

    def __init__(self, records: list[CatalogRecord] | None = None) -> None:
        self.records: dict[int, CatalogRecord] = {record.id: record for record in records or []}
        self.calls: list[str] = []
        self.updates: list[list] = []
        self.inserts: list[list] = []
        self.last_run: datetime | None = None
        self.fail_on: str | None = None

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            from feedsync.errors import RepositoryIOFailure

            raise RepositoryIOFailure(f"{name} failed")

    def find_by_external_ids(self, external_ids):
        self._call("find")
        return [record for record in self.records.values() if record.external_id in external_ids]

    def batch_update(self, patches):
        self._call("update")
        self.updates.append(list(patches))
        for patch in patches:
            record = self.records[patch.record_id]
            for name, value in patch.columns().items():
                setattr(record, name, value)

    def batch_insert(self, candidates, renewed_at):
        self._call("insert")
        self.inserts.append(list(candidates))
        next_id = max(self.records, default=0) + 1
        for offset, candidate in enumerate(candidates):
            record_id = next_id + offset
            self.records[record_id] = CatalogRecord(
                id=record_id,
                external_id=candidate.external_id,
                category_id=candidate.category_id,
                name=candidate.name,
                price=candidate.price,
                old_price=candidate.old_price,
                currency=candidate.currency,
                availability=candidate.availability,
                description=candidate.description,
                renewed_at=renewed_at,
                needs_renew=True,
            )

    def scan_available_after(self, cursor_id, page_size):
        self._call("scan")
        rows = sorted(
            (record.id, record.external_id)
            for record in self.records.values()
            if record.id > cursor_id and record.availability is Availability.AVAILABLE
        )
        return rows[:page_size]

    def count_available(self):
        return sum(1 for record in self.records.values() if record.availability is Availability.AVAILABLE)

    def record_successful_run(self, at):
        self._call("timestamp")
        self.last_run = at

    def by_external_id(self, external_id: str) -> CatalogRecord:
        return next(record for record in self.records.values() if record.external_id == external_id)


def make_record(record_id: int, external_id: str, *, availability=Availability.AVAILABLE, price="10.00", old_price=None, currency="UAH") -> CatalogRecord:
    return CatalogRecord(
        id=record_id,
        external_id=external_id,
        category_id=5,
        name=f"Product {external_id}",
        price=Decimal(price),
        old_price=Decimal(old_price) if old_price is not None else None,
        currency=currency,
        availability=availability,
    )


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def repository(engine):
    return SqlCatalogRepository(engine)


@pytest.fixture()
def seeded_engine(engine):
    with engine.begin() as conn:
        conn.execute(products.insert(), [
            {"external_id": "A", "category_id": 5, "name": "Alpha", "price": Decimal("10.00"), "currency": "UAH", "available": 1, "needs_renew": False},
            {"external_id": "B", "category_id": 5, "name": "Beta", "price": Decimal("20.00"), "currency": "UAH", "available": 1, "needs_renew": False},
            {"external_id": "C", "category_id": 5, "name": "Gamma", "price": Decimal("30.00"), "currency": "UAH", "available": 1, "needs_renew": False},
            {"external_id": "D", "category_id": 5, "name": "Delta", "price": Decimal("40.00"), "currency": "UAH", "available": 0, "needs_renew": False},
        ])
    return engine
